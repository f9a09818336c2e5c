from dataclasses import dataclass

from django.test import SimpleTestCase

from care_consent.core.application.cqrs import CommandBus, CommandDTO, PagedResult, QueryBus, QueryDTO


@dataclass(frozen=True)
class Ping(CommandDTO):
    value: int


@dataclass(frozen=True)
class Lookup(QueryDTO):
    key: str


class _Echo:
    def handle(self, message):
        return message


class BusTests(SimpleTestCase):
    def test_dispatch_routes_by_type(self) -> None:
        bus = CommandBus()
        bus.register(Ping, _Echo())
        self.assertEqual(bus.dispatch(Ping(1)), Ping(1))

    def test_unregistered_message(self) -> None:
        with self.assertRaises(LookupError):
            QueryBus().dispatch(Lookup("x"))

    def test_double_registration_is_rejected(self) -> None:
        bus = QueryBus()
        bus.register(Lookup, _Echo())
        with self.assertRaises(ValueError):
            bus.register(Lookup, _Echo())

    def test_paged_result_pages(self) -> None:
        self.assertEqual(PagedResult(items=[], total=101, page=1, page_size=50).total_pages, 3)
        self.assertEqual(PagedResult(items=[], total=0, page=1, page_size=50).total_pages, 0)
