from collections.abc import Callable, Iterable

import structlog

from care_consent.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

Subscriber = Callable[[DomainEvent], None]


class EventDispatcher:
    """
    In-process dispatcher for consent domain events.
    Subscriber errors are logged and never propagated to the caller.
    """
    def __init__(self) -> None:
        self._subs: dict[type[DomainEvent], list[Subscriber]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: Subscriber) -> None:
        self._subs.setdefault(event_type, []).append(handler)
        logger.debug(
            "event.subscribed",
            event_type=event_type.__name__,
            handler_name=_name_of(handler),
        )

    def dispatch(self, event: DomainEvent) -> None:
        handlers = self._subs.get(type(event), [])
        logger.info("event.dispatch", event_name=type(event).__name__, listeners=len(handlers))
        for h in handlers:
            try:
                h(event)
            except Exception as e:
                logger.error(
                    "event.handler_error",
                    event_name=type(event).__name__,
                    handler_name=_name_of(h),
                    error=str(e),
                    exc_info=True,
                )

    def dispatch_all(self, events: Iterable[DomainEvent]) -> None:
        for evt in events:
            self.dispatch(evt)


def _name_of(handler: Subscriber) -> str:
    return getattr(handler, "__name__", handler.__class__.__name__)
