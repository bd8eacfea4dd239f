from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from models import Account, Budget, Category, Transaction, TransactionType
from schemas import MAX_DB_INT
from storage import LedgerStorage, R, TransactionFilters


class DatabaseStorage(LedgerStorage):
    """SQLAlchemy-backed ledger. Every write commits the session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _add(self, record: R) -> R:
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def _get(self, model, record_id: int):
        # Ids outside the BIGINT range cannot be bound as parameters.
        if abs(record_id) > MAX_DB_INT:
            return None
        return self.session.get(model, record_id)

    def _delete(self, model, record_id: int) -> bool:
        record = self._get(model, record_id)
        if record is None:
            return False
        self.session.delete(record)
        self.session.commit()
        return True

    def list_accounts(self, user_id: int) -> list[Account]:
        stmt = select(Account).where(Account.user_id == user_id).order_by(Account.id)
        return list(self.session.scalars(stmt).all())

    def get_account(self, account_id: int) -> Optional[Account]:
        return self._get(Account, account_id)

    def add_account(self, account: Account) -> Account:
        return self._add(account)

    def delete_account(self, account_id: int) -> bool:
        return self._delete(Account, account_id)

    def list_categories(self, user_id: int) -> list[Category]:
        stmt = (
            select(Category).where(Category.user_id == user_id).order_by(Category.id)
        )
        return list(self.session.scalars(stmt).all())

    def get_category(self, category_id: int) -> Optional[Category]:
        return self._get(Category, category_id)

    def add_category(self, category: Category) -> Category:
        return self._add(category)

    def delete_category(self, category_id: int) -> bool:
        return self._delete(Category, category_id)

    def list_transactions(
        self, user_id: int, filters: Optional[TransactionFilters] = None
    ) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        if filters.start_date is not None:
            stmt = stmt.where(Transaction.date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Transaction.date <= filters.end_date)
        if filters.category_id is not None:
            stmt = stmt.where(Transaction.category_id == filters.category_id)
        if filters.account_id is not None:
            stmt = stmt.where(
                or_(
                    Transaction.account_id == filters.account_id,
                    and_(
                        Transaction.type == TransactionType.transfer,
                        Transaction.to_account_id == filters.account_id,
                    ),
                )
            )
        if filters.type is not None:
            stmt = stmt.where(Transaction.type == filters.type)
        return list(self.session.scalars(stmt).all())

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return self._get(Transaction, transaction_id)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        return self._add(transaction)

    def delete_transaction(self, transaction_id: int) -> bool:
        return self._delete(Transaction, transaction_id)

    def list_budgets(
        self, user_id: int, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[Budget]:
        stmt = select(Budget).where(Budget.user_id == user_id).order_by(Budget.id)
        if month is not None:
            stmt = stmt.where(Budget.month == month)
        if year is not None:
            stmt = stmt.where(Budget.year == year)
        return list(self.session.scalars(stmt).all())

    def get_budget(self, budget_id: int) -> Optional[Budget]:
        return self._get(Budget, budget_id)

    def add_budget(self, budget: Budget) -> Budget:
        return self._add(budget)

    def delete_budget(self, budget_id: int) -> bool:
        return self._delete(Budget, budget_id)

    def save(self, record: R) -> R:
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record
