from datetime import datetime
from threading import Lock
from typing import Optional

from models import Account, Budget, Category, Transaction
from storage import LedgerStorage, R, TransactionFilters, ledger_order_key


class MemoryStorage(LedgerStorage):
    """Dict-backed ledger, used by tests and the ``memory`` backend.

    Records are plain transient ORM instances that never touch a session.
    One instance is shared by all request threads, so every table access
    goes through ``_lock``.
    """

    def __init__(self) -> None:
        self.accounts: dict[int, Account] = {}
        self.categories: dict[int, Category] = {}
        self.transactions: dict[int, Transaction] = {}
        self.budgets: dict[int, Budget] = {}
        self._next_ids = {"account": 1, "category": 1, "transaction": 1, "budget": 1}
        self._lock = Lock()

    def _insert(self, kind: str, table: dict[int, R], record: R) -> R:
        now = datetime.utcnow()
        with self._lock:
            record.id = self._next_ids[kind]
            self._next_ids[kind] += 1
            record.created_at = now
            record.updated_at = now
            table[record.id] = record
        return record

    def _rows(self, table: dict[int, R], user_id: int) -> list[R]:
        with self._lock:
            rows = list(table.values())
        return [r for r in rows if r.user_id == user_id]

    def _pop(self, table: dict[int, R], record_id: int) -> bool:
        with self._lock:
            return table.pop(record_id, None) is not None

    def list_accounts(self, user_id: int) -> list[Account]:
        return self._rows(self.accounts, user_id)

    def get_account(self, account_id: int) -> Optional[Account]:
        return self.accounts.get(account_id)

    def add_account(self, account: Account) -> Account:
        return self._insert("account", self.accounts, account)

    def delete_account(self, account_id: int) -> bool:
        return self._pop(self.accounts, account_id)

    def list_categories(self, user_id: int) -> list[Category]:
        return self._rows(self.categories, user_id)

    def get_category(self, category_id: int) -> Optional[Category]:
        return self.categories.get(category_id)

    def add_category(self, category: Category) -> Category:
        return self._insert("category", self.categories, category)

    def delete_category(self, category_id: int) -> bool:
        return self._pop(self.categories, category_id)

    def list_transactions(
        self, user_id: int, filters: Optional[TransactionFilters] = None
    ) -> list[Transaction]:
        filters = filters or TransactionFilters()
        rows = [t for t in self._rows(self.transactions, user_id) if filters.matches(t)]
        return sorted(rows, key=ledger_order_key, reverse=True)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return self.transactions.get(transaction_id)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        return self._insert("transaction", self.transactions, transaction)

    def delete_transaction(self, transaction_id: int) -> bool:
        return self._pop(self.transactions, transaction_id)

    def list_budgets(
        self, user_id: int, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[Budget]:
        rows = self._rows(self.budgets, user_id)
        if month is not None:
            rows = [b for b in rows if b.month == month]
        if year is not None:
            rows = [b for b in rows if b.year == year]
        return sorted(rows, key=lambda b: b.id)

    def get_budget(self, budget_id: int) -> Optional[Budget]:
        return self.budgets.get(budget_id)

    def add_budget(self, budget: Budget) -> Budget:
        return self._insert("budget", self.budgets, budget)

    def delete_budget(self, budget_id: int) -> bool:
        return self._pop(self.budgets, budget_id)

    def save(self, record: R) -> R:
        record.updated_at = datetime.utcnow()
        return record
