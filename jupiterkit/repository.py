"""The repository: a local directory of data files, its loaders and its file events.

Files live below a base directory. Listeners subscribe via
:meth:`Repository.listener` and receive a :class:`~jupiterkit.repo_files.FileEvent`
whenever a file changes or is deleted. Loaders are registered by name and are
later looked up by the name given in a loader descriptor.
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from collections import deque
from pathlib import Path
from typing import Any

from jupiterkit.platform import Platform
from jupiterkit.repo_files import FileEvent

log = logging.getLogger(__name__)

FILE_EVENT_BROADCAST_BUFFER_SIZE = 128
_MAX_SEND_ATTEMPTS = 10


class UnknownLoaderError(LookupError):
    """Raised when no loader is registered under the requested name."""


class _FileEventReceiver:
    """Receives the file events broadcast by a repository.

    Holds at most ``capacity`` pending events; if more arrive, the oldest are
    dropped and counted in :attr:`lagged`.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._events: deque[FileEvent] = deque()
        self._condition = threading.Condition()
        self.lagged = 0

    def _push(self, event: FileEvent) -> None:
        with self._condition:
            if len(self._events) >= self._capacity:
                self._events.popleft()
                self.lagged += 1
            self._events.append(event)
            self._condition.notify_all()

    def recv(self, timeout: float | None = None) -> FileEvent:
        """Returns the next event, waiting up to ``timeout`` seconds.

        Raises :class:`TimeoutError` if no event arrives in time.
        """
        with self._condition:
            if not self._condition.wait_for(lambda: bool(self._events), timeout):
                raise TimeoutError("No file event received in time.")
            return self._events.popleft()

    def __len__(self) -> int:
        with self._condition:
            return len(self._events)


class Repository:
    """Connects the repository base directory, its loaders and its listeners."""

    def __init__(
        self,
        base_dir: str | Path | None = None,
        buffer_size: int = FILE_EVENT_BROADCAST_BUFFER_SIZE,
        retry_pause: float = 1.0,
    ) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else Path("repository")
        self._buffer_size = buffer_size
        self._retry_pause = retry_pause
        self._loaders: dict[str, Any] = {}
        self._loaders_lock = threading.Lock()
        self._listeners: weakref.WeakSet[_FileEventReceiver] = weakref.WeakSet()
        self._listeners_lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        """The directory holding the repository contents."""
        return self._base_dir

    def register_loader(self, name: str, loader: Any) -> None:
        """Registers ``loader`` so that loader descriptors can refer to it by ``name``."""
        with self._loaders_lock:
            self._loaders[name] = loader

    def find_loader(self, name: str) -> Any:
        """Returns the loader registered as ``name`` or raises :class:`UnknownLoaderError`."""
        with self._loaders_lock:
            try:
                return self._loaders[name]
            except KeyError:
                raise UnknownLoaderError(f"Unknown loader: {name}") from None

    def ensure_base_dir(self) -> Path:
        """Creates the base directory if needed and returns it."""
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            log.warning(
                "Failed to create repository base directory %s: %s", self._base_dir, error
            )
        return self._base_dir

    def resolve(self, file_name: str) -> Path:
        """Turns a repository name like ``/dir/file.yml`` into a path on disk."""
        result = self.ensure_base_dir()
        for element in file_name.split("/"):
            if element:
                result = result / element
        return result

    def listener(self) -> _FileEventReceiver:
        """Subscribes to all file events sent from now on."""
        receiver = _FileEventReceiver(self._buffer_size)
        with self._listeners_lock:
            self._listeners.add(receiver)
        return receiver

    def _pending(self) -> int:
        with self._listeners_lock:
            listeners = list(self._listeners)
        return max((len(listener) for listener in listeners), default=0)

    def send_file_event(self, event: FileEvent) -> None:
        """Broadcasts ``event`` to all listeners.

        While a listener's buffer is full, sending pauses for ``retry_pause``
        seconds, up to ten times, before the event is sent regardless.
        """
        attempt = 0
        while self._pending() >= self._buffer_size and attempt < _MAX_SEND_ATTEMPTS:
            attempt += 1
            log.debug(
                "Pausing sending file events because the broadcast buffer is full "
                "(Attempt %d of %d)",
                attempt,
                _MAX_SEND_ATTEMPTS,
            )
            time.sleep(self._retry_pause)

        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener._push(event)


def create(platform: Platform, base_dir: str | Path | None = None) -> Repository:
    """Creates a repository and registers it in ``platform``."""
    repository = Repository(base_dir)
    platform.register(repository, Repository)
    return repository