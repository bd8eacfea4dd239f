import datetime as dt
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import TransactionType

# Largest value a SQLite or Postgres BIGINT column can hold.
MAX_DB_INT = 2**63 - 1
MAX_AMOUNT_CENTS = 10**15


def transaction_rule_violation(
    type: TransactionType,
    account_id: Optional[int],
    to_account_id: Optional[int],
    category_id: Optional[int],
) -> Optional[str]:
    """Return a message describing the first broken ledger rule, if any."""
    if account_id is None:
        return "Account is required"
    if type == TransactionType.transfer:
        if to_account_id is None:
            return "Transfers require a destination account"
        if to_account_id == account_id:
            return "Transfer source and destination accounts must differ"
        if category_id is not None:
            return "Transfers cannot have a category"
        return None
    if to_account_id is not None:
        return "Only transfers can have a destination account"
    return None


class AccountIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class AccountUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    user_id: int


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    is_default: bool = False


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_default: Optional[bool] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    user_id: int
    is_default: bool


class TransactionIn(BaseModel):
    date: date
    type: TransactionType
    amount_cents: int = Field(..., gt=0, le=MAX_AMOUNT_CENTS)
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: Optional[int] = Field(default=None, le=MAX_DB_INT)
    account_id: int = Field(..., le=MAX_DB_INT)
    to_account_id: Optional[int] = Field(default=None, le=MAX_DB_INT)
    invoice_name: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def check_accounts(self) -> "TransactionIn":
        problem = transaction_rule_violation(
            self.type, self.account_id, self.to_account_id, self.category_id
        )
        if problem:
            raise ValueError(problem)
        return self


class TransactionUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    model_config = ConfigDict(extra="forbid")

    date: Optional[dt.date] = None
    type: Optional[TransactionType] = None
    amount_cents: Optional[int] = Field(default=None, gt=0, le=MAX_AMOUNT_CENTS)
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: Optional[int] = Field(default=None, le=MAX_DB_INT)
    account_id: Optional[int] = Field(default=None, le=MAX_DB_INT)
    to_account_id: Optional[int] = Field(default=None, le=MAX_DB_INT)
    invoice_name: Optional[str] = Field(default=None, max_length=255)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: date
    type: TransactionType
    amount_cents: int
    description: Optional[str]
    category_id: Optional[int]
    account_id: int
    to_account_id: Optional[int]
    invoice_name: Optional[str]
    user_id: int


class BudgetIn(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    amount_cents: int = Field(..., gt=0, le=MAX_AMOUNT_CENTS)
    category_id: Optional[int] = Field(default=None, le=MAX_DB_INT)


class BudgetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    amount_cents: Optional[int] = Field(default=None, gt=0, le=MAX_AMOUNT_CENTS)
    category_id: Optional[int] = Field(default=None, le=MAX_DB_INT)


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    year: int
    month: int
    amount_cents: int
    category_id: Optional[int]
    user_id: int


class FinancialSummaryOut(BaseModel):
    total_income_cents: int
    total_expenses_cents: int
    balance_cents: int
    last_updated: datetime


class CategoryExpenseOut(BaseModel):
    category_id: int
    category_name: str
    amount_cents: int


class WeeklySpendingOut(BaseModel):
    start_date: date
    end_date: date
    amount_cents: int


class MonthlyOverviewOut(BaseModel):
    budget_cents: int
    spent_cents: int
    weekly_spending: list[WeeklySpendingOut]


class BudgetProgressOut(BaseModel):
    category_id: int
    category_name: str
    budget_cents: int
    spent_cents: int
    remaining_cents: int
