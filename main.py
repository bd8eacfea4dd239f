import logging
from datetime import date
from typing import Iterator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response

from config import get_settings
from database import SessionLocal, session_scope
from database_storage import DatabaseStorage
from memory_storage import MemoryStorage
from models import TransactionType
from schemas import (
    MAX_DB_INT,
    AccountIn,
    AccountOut,
    AccountUpdate,
    BudgetIn,
    BudgetOut,
    BudgetProgressOut,
    BudgetUpdate,
    CategoryExpenseOut,
    CategoryIn,
    CategoryOut,
    CategoryUpdate,
    FinancialSummaryOut,
    MonthlyOverviewOut,
    TransactionIn,
    TransactionOut,
    TransactionUpdate,
)
from seed import seed_defaults
from services import (
    AccountService,
    BudgetService,
    CategoryService,
    MetricsService,
    NotFoundError,
    TransactionService,
)
from storage import LedgerStorage, TransactionFilters

logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker")


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()

memory_storage = MemoryStorage()


def get_storage() -> Iterator[LedgerStorage]:
    if get_settings().storage_backend == "memory":
        yield memory_storage
        return
    db = SessionLocal()
    try:
        yield DatabaseStorage(db)
    finally:
        db.close()


def get_user_id(
    x_user_id: Optional[int] = Header(default=None, ge=1, le=MAX_DB_INT)
) -> int:
    if x_user_id is not None:
        return x_user_id
    return get_settings().default_user_id


def http_error(exc: ValueError) -> HTTPException:
    status = 404 if isinstance(exc, NotFoundError) else 400
    return HTTPException(status_code=status, detail=str(exc))


def current_month_and_year(
    month: Optional[int], year: Optional[int]
) -> tuple[int, int]:
    today = date.today()
    return (month or today.month, year or today.year)


@app.on_event("startup")
def startup_event():
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    logger.info(
        f"startup: version={APP_VERSION} storage={settings.storage_backend} "
        f"default_user={settings.default_user_id}"
    )
    if not settings.seed_defaults:
        return
    if settings.storage_backend == "memory":
        seed_defaults(memory_storage, settings.default_user_id)
        return
    with session_scope() as session:
        seed_defaults(DatabaseStorage(session), settings.default_user_id)


@app.get("/healthz")
def healthz():
    return {"status": "ok", "version": APP_VERSION}


# Accounts


@app.get("/api/accounts", response_model=list[AccountOut])
def list_accounts(
    storage: LedgerStorage = Depends(get_storage), user_id: int = Depends(get_user_id)
):
    return AccountService(storage, user_id).list_all()


@app.get("/api/accounts/{account_id}", response_model=AccountOut)
def get_account(
    account_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return AccountService(storage, user_id).get(account_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/accounts", response_model=AccountOut, status_code=201)
def create_account(
    data: AccountIn,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    return AccountService(storage, user_id).create(data)


@app.put("/api/accounts/{account_id}", response_model=AccountOut)
def update_account(
    account_id: int,
    data: AccountUpdate,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return AccountService(storage, user_id).update(account_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/accounts/{account_id}", status_code=204)
def delete_account(
    account_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        AccountService(storage, user_id).delete(account_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Categories


@app.get("/api/categories", response_model=list[CategoryOut])
def list_categories(
    storage: LedgerStorage = Depends(get_storage), user_id: int = Depends(get_user_id)
):
    return CategoryService(storage, user_id).list_all()


@app.get("/api/categories/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return CategoryService(storage, user_id).get(category_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    return CategoryService(storage, user_id).create(data)


@app.put("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return CategoryService(storage, user_id).update(category_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        CategoryService(storage, user_id).delete(category_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Transactions


@app.get("/api/transactions", response_model=list[TransactionOut])
def list_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[int] = Query(default=None, le=MAX_DB_INT),
    account_id: Optional[int] = Query(default=None, le=MAX_DB_INT),
    type: Optional[TransactionType] = None,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=400, detail="Start date must be before end date"
        )
    filters = TransactionFilters(
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        account_id=account_id,
        type=type,
    )
    return MetricsService(storage, user_id).transactions(filters)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return TransactionService(storage, user_id).get(transaction_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    data: TransactionIn,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return TransactionService(storage, user_id).create(data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return TransactionService(storage, user_id).update(transaction_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        TransactionService(storage, user_id).delete(transaction_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Budgets


@app.get("/api/budgets", response_model=list[BudgetOut])
def list_budgets(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    return BudgetService(storage, user_id).list_all(month, year)


@app.get("/api/budgets/{budget_id}", response_model=BudgetOut)
def get_budget(
    budget_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return BudgetService(storage, user_id).get(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/budgets", response_model=BudgetOut, status_code=201)
def create_budget(
    data: BudgetIn,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return BudgetService(storage, user_id).create(data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/budgets/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int,
    data: BudgetUpdate,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return BudgetService(storage, user_id).update(budget_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/budgets/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        BudgetService(storage, user_id).delete(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Aggregates


@app.get("/api/financial-summary", response_model=FinancialSummaryOut)
def api_financial_summary(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return MetricsService(storage, user_id).financial_summary(month, year)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/expenses-by-category", response_model=list[CategoryExpenseOut])
def api_expenses_by_category(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    try:
        return MetricsService(storage, user_id).expenses_by_category(month, year)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/monthly-overview", response_model=MonthlyOverviewOut)
def api_monthly_overview(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    month, year = current_month_and_year(month, year)
    return MetricsService(storage, user_id).monthly_overview(month, year)


@app.get("/api/budget-progress", response_model=list[BudgetProgressOut])
def api_budget_progress(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    storage: LedgerStorage = Depends(get_storage),
    user_id: int = Depends(get_user_id),
):
    month, year = current_month_and_year(month, year)
    return MetricsService(storage, user_id).budget_progress(month, year)
