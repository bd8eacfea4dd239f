"""Storage port for the ledger.

Services and the metrics engine only talk to ``LedgerStorage``. Two
implementations exist: ``MemoryStorage`` (process-local dicts) and
``DatabaseStorage`` (SQLAlchemy session). Both must return identical results
for the same data, including transaction ordering.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional, TypeVar

from models import Account, Budget, Category, Transaction, TransactionType

R = TypeVar("R", Account, Category, Transaction, Budget)


@dataclass
class TransactionFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    type: Optional[TransactionType] = None

    def matches(self, txn: Transaction) -> bool:
        if self.start_date is not None and txn.date < self.start_date:
            return False
        if self.end_date is not None and txn.date > self.end_date:
            return False
        if self.category_id is not None and txn.category_id != self.category_id:
            return False
        if self.account_id is not None:
            touches = txn.account_id == self.account_id or (
                txn.type == TransactionType.transfer
                and txn.to_account_id == self.account_id
            )
            if not touches:
                return False
        if self.type is not None and txn.type != self.type:
            return False
        return True


def ledger_order_key(txn: Transaction) -> tuple[date, int]:
    """Sort key for newest-first listings; use with ``reverse=True``."""
    return (txn.date, txn.id)


class LedgerStorage(ABC):
    """Read/write access to one ledger store.

    ``add_*`` assigns the id and returns the stored record. ``delete_*``
    returns False when nothing was deleted. Records returned by ``get_*`` may
    be mutated by the caller and then persisted with ``save``.
    """

    @abstractmethod
    def list_accounts(self, user_id: int) -> list[Account]: ...

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]: ...

    @abstractmethod
    def add_account(self, account: Account) -> Account: ...

    @abstractmethod
    def delete_account(self, account_id: int) -> bool: ...

    @abstractmethod
    def list_categories(self, user_id: int) -> list[Category]: ...

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]: ...

    @abstractmethod
    def add_category(self, category: Category) -> Category: ...

    @abstractmethod
    def delete_category(self, category_id: int) -> bool: ...

    @abstractmethod
    def list_transactions(
        self, user_id: int, filters: Optional[TransactionFilters] = None
    ) -> list[Transaction]:
        """Transactions of ``user_id`` matching ``filters``, newest first."""

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]: ...

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> Transaction: ...

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> bool: ...

    @abstractmethod
    def list_budgets(
        self, user_id: int, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[Budget]:
        """Budgets of ``user_id`` in creation order, optionally for one period."""

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[Budget]: ...

    @abstractmethod
    def add_budget(self, budget: Budget) -> Budget: ...

    @abstractmethod
    def delete_budget(self, budget_id: int) -> bool: ...

    @abstractmethod
    def save(self, record: R) -> R: ...
