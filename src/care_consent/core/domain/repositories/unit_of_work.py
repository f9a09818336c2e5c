from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractContextManager


class UnitOfWork(ABC):
    """Transaction boundary shared by the repositories of one request."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        ...

    @abstractmethod
    def on_commit(self, callback: Callable[[], None]) -> None:
        """Runs `callback` after the outermost transaction commits (immediately if none is open)."""
        ...
