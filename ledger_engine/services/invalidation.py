"""
Downstream view invalidation.

After a committed write the engine signals that the dashboard and the
affected account's view are stale. The presentation layer decides what
to do with that; the ledger only emits the paths.
"""

from abc import ABC, abstractmethod

import structlog


class InvalidationNotifier(ABC):
    """Receives invalidation signals for cached views."""

    @abstractmethod
    def invalidate(self, path: str) -> None:
        pass


class LoggingInvalidationNotifier(InvalidationNotifier):
    """Default notifier: records the signal in the structured log."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def invalidate(self, path: str) -> None:
        self._logger.info("view_invalidated", path=path)


class RecordingInvalidationNotifier(InvalidationNotifier):
    """Keeps every invalidated path in order, for in-process consumers."""

    def __init__(self):
        self.paths: list[str] = []

    def invalidate(self, path: str) -> None:
        self.paths.append(path)
