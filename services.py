from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from models import Account, Budget, Category, Transaction, TransactionType
from periods import Period, month_period, resolve_period, weekly_windows
from schemas import (
    AccountIn,
    AccountUpdate,
    BudgetIn,
    BudgetUpdate,
    CategoryIn,
    CategoryUpdate,
    TransactionIn,
    TransactionUpdate,
    transaction_rule_violation,
)
from storage import LedgerStorage, TransactionFilters

logger = logging.getLogger(__name__)


class NotFoundError(ValueError):
    pass


def _owned(record, user_id: int, label: str):
    if record is None or record.user_id != user_id:
        raise NotFoundError(f"{label} not found")
    return record


class AccountService:
    def __init__(self, storage: LedgerStorage, user_id: int) -> None:
        self.storage = storage
        self.user_id = user_id

    def list_all(self) -> list[Account]:
        return self.storage.list_accounts(self.user_id)

    def get(self, account_id: int) -> Account:
        return _owned(self.storage.get_account(account_id), self.user_id, "Account")

    def create(self, data: AccountIn) -> Account:
        account = self.storage.add_account(
            Account(user_id=self.user_id, name=data.name.strip())
        )
        logger.info(f"account_created: user={self.user_id} id={account.id}")
        return account

    def update(self, account_id: int, data: AccountUpdate) -> Account:
        account = self.get(account_id)
        if data.name is not None:
            account.name = data.name.strip()
        return self.storage.save(account)

    def delete(self, account_id: int) -> None:
        self.get(account_id)
        # Transactions referencing the account are kept as history.
        self.storage.delete_account(account_id)
        logger.info(f"account_deleted: user={self.user_id} id={account_id}")


class CategoryService:
    def __init__(self, storage: LedgerStorage, user_id: int) -> None:
        self.storage = storage
        self.user_id = user_id

    def list_all(self) -> list[Category]:
        return self.storage.list_categories(self.user_id)

    def get(self, category_id: int) -> Category:
        return _owned(
            self.storage.get_category(category_id), self.user_id, "Category"
        )

    def create(self, data: CategoryIn) -> Category:
        category = self.storage.add_category(
            Category(
                user_id=self.user_id,
                name=data.name.strip(),
                is_default=data.is_default,
            )
        )
        logger.info(f"category_created: user={self.user_id} id={category.id}")
        return category

    def update(self, category_id: int, data: CategoryUpdate) -> Category:
        category = self.get(category_id)
        if data.name is not None:
            category.name = data.name.strip()
        if data.is_default is not None:
            category.is_default = data.is_default
        return self.storage.save(category)

    def delete(self, category_id: int) -> None:
        self.get(category_id)
        self.storage.delete_category(category_id)
        logger.info(f"category_deleted: user={self.user_id} id={category_id}")


class TransactionService:
    def __init__(self, storage: LedgerStorage, user_id: int) -> None:
        self.storage = storage
        self.user_id = user_id

    def _check_references(
        self,
        account_id: Optional[int],
        to_account_id: Optional[int],
        category_id: Optional[int],
    ) -> None:
        if account_id is not None:
            _owned(self.storage.get_account(account_id), self.user_id, "Account")
        if to_account_id is not None:
            _owned(
                self.storage.get_account(to_account_id),
                self.user_id,
                "Destination account",
            )
        if category_id is not None:
            _owned(self.storage.get_category(category_id), self.user_id, "Category")

    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        return self.storage.list_transactions(self.user_id, filters)

    def get(self, transaction_id: int) -> Transaction:
        return _owned(
            self.storage.get_transaction(transaction_id), self.user_id, "Transaction"
        )

    def create(self, data: TransactionIn) -> Transaction:
        self._check_references(data.account_id, data.to_account_id, data.category_id)
        txn = self.storage.add_transaction(
            Transaction(
                user_id=self.user_id,
                date=data.date,
                type=data.type,
                amount_cents=data.amount_cents,
                description=data.description,
                category_id=data.category_id,
                account_id=data.account_id,
                to_account_id=data.to_account_id,
                invoice_name=data.invoice_name,
            )
        )
        logger.info(
            f"transaction_created: user={self.user_id} id={txn.id} "
            f"type={txn.type.value} date={txn.date.isoformat()}"
        )
        return txn

    def update(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        txn = self.get(transaction_id)
        changes = data.model_dump(exclude_unset=True)
        for required in ("date", "type", "amount_cents", "account_id"):
            if required in changes and changes[required] is None:
                raise ValueError(f"{required} cannot be cleared")

        merged = {
            "type": changes.get("type", txn.type),
            "account_id": changes.get("account_id", txn.account_id),
            "to_account_id": changes.get("to_account_id", txn.to_account_id),
            "category_id": changes.get("category_id", txn.category_id),
        }
        problem = transaction_rule_violation(**merged)
        if problem:
            raise ValueError(problem)
        # Only newly referenced ids are checked; stale references may already
        # be orphaned by an earlier account or category delete.
        self._check_references(
            changes.get("account_id"),
            changes.get("to_account_id"),
            changes.get("category_id"),
        )

        for field, value in changes.items():
            setattr(txn, field, value)
        return self.storage.save(txn)

    def delete(self, transaction_id: int) -> None:
        self.get(transaction_id)
        self.storage.delete_transaction(transaction_id)
        logger.info(f"transaction_deleted: user={self.user_id} id={transaction_id}")


class BudgetService:
    def __init__(self, storage: LedgerStorage, user_id: int) -> None:
        self.storage = storage
        self.user_id = user_id

    def list_all(
        self, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[Budget]:
        return self.storage.list_budgets(self.user_id, month, year)

    def get(self, budget_id: int) -> Budget:
        return _owned(self.storage.get_budget(budget_id), self.user_id, "Budget")

    def create(self, data: BudgetIn) -> Budget:
        if data.category_id is not None:
            _owned(
                self.storage.get_category(data.category_id), self.user_id, "Category"
            )
        budget = self.storage.add_budget(
            Budget(
                user_id=self.user_id,
                year=data.year,
                month=data.month,
                amount_cents=data.amount_cents,
                category_id=data.category_id,
            )
        )
        logger.info(
            f"budget_created: user={self.user_id} id={budget.id} "
            f"period={budget.year:04d}-{budget.month:02d}"
        )
        return budget

    def update(self, budget_id: int, data: BudgetUpdate) -> Budget:
        budget = self.get(budget_id)
        changes = data.model_dump(exclude_unset=True)
        for required in ("year", "month", "amount_cents"):
            if required in changes and changes[required] is None:
                raise ValueError(f"{required} cannot be cleared")
        if changes.get("category_id") is not None:
            _owned(
                self.storage.get_category(changes["category_id"]),
                self.user_id,
                "Category",
            )
        for field, value in changes.items():
            setattr(budget, field, value)
        return self.storage.save(budget)

    def delete(self, budget_id: int) -> None:
        self.get(budget_id)
        self.storage.delete_budget(budget_id)
        logger.info(f"budget_deleted: user={self.user_id} id={budget_id}")


@dataclass(frozen=True)
class FinancialSummary:
    total_income_cents: int
    total_expenses_cents: int
    balance_cents: int
    last_updated: datetime


@dataclass
class CategoryExpense:
    category_id: int
    category_name: str
    amount_cents: int


@dataclass(frozen=True)
class WeeklySpending:
    start_date: date
    end_date: date
    amount_cents: int


@dataclass(frozen=True)
class MonthlyOverview:
    budget_cents: int
    spent_cents: int
    weekly_spending: list[WeeklySpending]


@dataclass(frozen=True)
class BudgetProgress:
    category_id: int
    category_name: str
    budget_cents: int
    spent_cents: int
    remaining_cents: int


def latest_budget_by_scope(budgets: list[Budget]) -> dict[Optional[int], Budget]:
    """Pick one budget per category scope; the most recently created wins.

    Budget rows are not unique per (month, year, category), so duplicates are
    resolved by the highest id.
    """
    chosen: dict[Optional[int], Budget] = {}
    for budget in budgets:
        current = chosen.get(budget.category_id)
        if current is None or budget.id > current.id:
            chosen[budget.category_id] = budget
    return chosen


class MetricsService:
    """Read-side aggregates over one user's ledger.

    Nothing here writes to storage. Empty ledgers produce zero totals and
    empty lists; callers validate month/year before calling.
    """

    def __init__(self, storage: LedgerStorage, user_id: int) -> None:
        self.storage = storage
        self.user_id = user_id

    def _ledger(
        self,
        period: Optional[Period],
        transaction_type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        filters = TransactionFilters(type=transaction_type)
        if period is not None:
            filters.start_date = period.start
            filters.end_date = period.end
        return self.storage.list_transactions(self.user_id, filters)

    def transactions(
        self, filters: Optional[TransactionFilters] = None
    ) -> list[Transaction]:
        return self.storage.list_transactions(self.user_id, filters)

    def financial_summary(
        self, month: Optional[int] = None, year: Optional[int] = None
    ) -> FinancialSummary:
        period = resolve_period(month, year)
        income = 0
        expenses = 0
        for txn in self._ledger(period):
            if txn.type == TransactionType.income:
                income += txn.amount_cents
            elif txn.type == TransactionType.expense:
                expenses += txn.amount_cents
        return FinancialSummary(
            total_income_cents=income,
            total_expenses_cents=expenses,
            balance_cents=income - expenses,
            last_updated=datetime.now(timezone.utc),
        )

    def expenses_by_category(
        self, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[CategoryExpense]:
        period = resolve_period(month, year)
        categories = {c.id: c for c in self.storage.list_categories(self.user_id)}
        breakdown: dict[int, CategoryExpense] = {}
        for txn in self._ledger(period, TransactionType.expense):
            if txn.category_id is None:
                continue
            category = categories.get(txn.category_id)
            if category is None:
                # Orphaned reference: the category was deleted.
                continue
            entry = breakdown.get(category.id)
            if entry is None:
                breakdown[category.id] = CategoryExpense(
                    category_id=category.id,
                    category_name=category.name,
                    amount_cents=txn.amount_cents,
                )
            else:
                entry.amount_cents += txn.amount_cents
        return list(breakdown.values())

    def monthly_overview(self, month: int, year: int) -> MonthlyOverview:
        period = month_period(year, month)
        overall = latest_budget_by_scope(
            self.storage.list_budgets(self.user_id, month, year)
        ).get(None)
        expenses = self._ledger(period, TransactionType.expense)

        weekly: list[WeeklySpending] = []
        for window in weekly_windows(year, month):
            amount = sum(t.amount_cents for t in expenses if window.contains(t.date))
            weekly.append(WeeklySpending(window.start, window.end, amount))

        return MonthlyOverview(
            budget_cents=overall.amount_cents if overall else 0,
            spent_cents=sum(t.amount_cents for t in expenses),
            weekly_spending=weekly,
        )

    def budget_progress(self, month: int, year: int) -> list[BudgetProgress]:
        period = month_period(year, month)
        scoped = latest_budget_by_scope(
            self.storage.list_budgets(self.user_id, month, year)
        )
        categories = {c.id: c for c in self.storage.list_categories(self.user_id)}
        spent_by_category: dict[int, int] = {}
        for txn in self._ledger(period, TransactionType.expense):
            if txn.category_id is not None:
                spent_by_category[txn.category_id] = (
                    spent_by_category.get(txn.category_id, 0) + txn.amount_cents
                )

        progress: list[BudgetProgress] = []
        for category_id in sorted(k for k in scoped if k is not None):
            category = categories.get(category_id)
            if category is None:
                continue
            budget = scoped[category_id]
            spent = spent_by_category.get(category_id, 0)
            progress.append(
                BudgetProgress(
                    category_id=category_id,
                    category_name=category.name,
                    budget_cents=budget.amount_cents,
                    spent_cents=spent,
                    remaining_cents=budget.amount_cents - spent,
                )
            )
        return progress
