"""A small service container holding the central components of a system."""

from __future__ import annotations

import threading
from typing import Any, TypeVar

T = TypeVar("T")


class ServiceUnavailableError(LookupError):
    """Raised when a required service is missing or the platform has shut down."""


class Platform:
    """Keeps one instance per service type and the central "is running" flag.

    Once :meth:`terminate` has been called, all services are released and
    :meth:`is_running` reports ``False``.
    """

    def __init__(self) -> None:
        self._services: dict[type, Any] = {}
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._running.set()

    def register(self, service: Any, service_type: type | None = None) -> None:
        """Registers ``service`` under ``service_type`` (its own type by default)."""
        key = service_type if service_type is not None else type(service)
        with self._lock:
            self._services[key] = service

    def find(self, service_type: type[T]) -> T | None:
        """Returns the service registered for ``service_type`` or ``None``."""
        with self._lock:
            service = self._services.get(service_type)
        if service is None or not isinstance(service, service_type):
            return None
        return service

    def require(self, service_type: type[T]) -> T:
        """Returns the service registered for ``service_type`` or raises."""
        name = getattr(service_type, "__qualname__", repr(service_type))
        if not self.is_running():
            raise ServiceUnavailableError(
                f"A required component ({name}) has been requested "
                "but the system is already shutting down!"
            )
        service = self.find(service_type)
        if service is None:
            raise ServiceUnavailableError(
                f"A required component ({name}) was not available in the platform registry!"
            )
        return service

    def is_running(self) -> bool:
        """Tells whether :meth:`terminate` has not been called yet."""
        return self._running.is_set()

    def terminate(self) -> None:
        """Releases all services and marks the platform as halted."""
        with self._lock:
            self._services.clear()
        self._running.clear()