"""Read, hit and write counters of an LRU cache."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CacheMetrics:
    """Counts reads, hits and writes performed on a cache since the last reset."""

    reads: int = 0
    hits: int = 0
    writes: int = 0

    def record_read(self, hit: bool) -> None:
        """Counts one read, and one hit if ``hit`` is true."""
        self.reads += 1
        if hit:
            self.hits += 1

    def record_write(self) -> None:
        """Counts one write."""
        self.writes += 1

    def reset(self) -> None:
        """Sets all counters back to zero."""
        self.reads = 0
        self.hits = 0
        self.writes = 0

    def hit_rate(self) -> float:
        """Returns the share of reads that hit an entry, in percent (0 without reads)."""
        if self.reads == 0:
            return 0.0
        return self.hits / self.reads * 100.0

    def write_read_ratio(self) -> float:
        """Returns the share of all operations that were writes, in percent.

        Without any reads this is 100.
        """
        if self.reads == 0:
            return 100.0
        return self.writes / (self.writes + self.reads) * 100.0