"""Files of a repository and the events emitted when they change."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(eq=False, frozen=True)
class RepositoryFile:
    """A file within the repository.

    ``name`` is the repository-relative name (e.g. ``/loaders/test.yml``) and
    ``path`` the location on disk. Two files are equal if their names are equal.
    """

    name: str
    path: Path
    size: int
    last_modified: datetime

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RepositoryFile):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name


class FileEventKind(enum.Enum):
    """What happened to a repository file."""

    CHANGED = "Changed"
    DELETED = "Deleted"


@dataclass(frozen=True)
class FileEvent:
    """Broadcast to all listeners of a repository once a file changed or vanished."""

    kind: FileEventKind
    file: RepositoryFile

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.file}"


class BackgroundEventKind(enum.Enum):
    """The kinds of events sent from the background worker to the frontend."""

    FILE_LIST_UPDATED = enum.auto()
    FILE_EVENT = enum.auto()
    EPOCH_COUNTER = enum.auto()


@dataclass(frozen=True)
class BackgroundEvent:
    """An event sent back from the background worker.

    ``FILE_LIST_UPDATED`` carries ``files``, ``FILE_EVENT`` carries
    ``file_event`` and ``EPOCH_COUNTER`` carries ``epoch``.
    """

    kind: BackgroundEventKind
    files: tuple[RepositoryFile, ...] = field(default=())
    file_event: FileEvent | None = None
    epoch: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", tuple(self.files))
        if self.kind is BackgroundEventKind.FILE_EVENT:
            if self.file_event is None:
                raise ValueError("A file event requires 'file_event'.")
        elif self.file_event is not None:
            raise ValueError(f"{self.kind.name} does not carry a file event.")

        if self.kind is BackgroundEventKind.EPOCH_COUNTER:
            if self.epoch is None:
                raise ValueError("An epoch counter event requires 'epoch'.")
        elif self.epoch is not None:
            raise ValueError(f"{self.kind.name} does not carry an epoch.")

        if self.kind is not BackgroundEventKind.FILE_LIST_UPDATED and self.files:
            raise ValueError(f"{self.kind.name} does not carry a file list.")