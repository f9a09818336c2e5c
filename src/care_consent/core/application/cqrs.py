from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

import structlog

C = TypeVar('C')  # Command type
Q = TypeVar('Q')  # Query type
R = TypeVar('R')  # Query result type
T = TypeVar('T')  # PagedResult item type

logger = structlog.get_logger(__name__)

# ───────────────────────────────────────────────
# Messages
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class CommandDTO:
    """Base for every state-changing command."""

@dataclass(frozen=True)
class QueryDTO:
    """Base for read-only queries."""

@dataclass(frozen=True)
class PagedResult(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    page_size: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'total_pages', math.ceil(self.total / self.page_size) if self.page_size else 0)

# ───────────────────────────────────────────────
# Handler protocols
# ───────────────────────────────────────────────
class CommandHandler(Protocol, Generic[C]):
    def handle(self, command: C) -> Any:
        ...

class QueryHandler(Protocol, Generic[Q, R]):
    def handle(self, query: Q) -> R:
        ...

# ───────────────────────────────────────────────
# Buses
# ───────────────────────────────────────────────
class _Bus:
    """One handler per message type; every dispatch is timed and logged."""
    kind = "message"

    def __init__(self) -> None:
        self._handlers: dict[type, Any] = {}

    def register(self, message_type: type, handler: Any) -> None:
        if message_type in self._handlers:
            raise ValueError(f"{self.kind} {message_type.__name__} already has a handler")
        self._handlers[message_type] = handler
        logger.debug(f"cqrs.{self.kind}_registered", message=message_type.__name__)

    def dispatch(self, message: Any) -> Any:
        name = type(message).__name__
        handler = self._handlers.get(type(message))
        if handler is None:
            raise LookupError(f"No handler registered for {self.kind}: {name}")
        start = time.perf_counter()
        try:
            return handler.handle(message)
        finally:
            logger.info(f"cqrs.{self.kind}_finished", message=name, duration=f"{time.perf_counter() - start:.3f}s")


class CommandBus(_Bus):
    kind = "command"


class QueryBus(_Bus):
    kind = "query"
