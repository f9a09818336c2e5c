from collections.abc import Callable
from contextlib import AbstractContextManager

from django.db import transaction

from care_consent.core.domain.repositories.unit_of_work import UnitOfWork


class DjangoUnitOfWork(UnitOfWork):
    """`transaction.atomic` on the default database; nested blocks become savepoints."""

    def __init__(self, using: str | None = None) -> None:
        self.using = using

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic(using=self.using)

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(callback, using=self.using)
