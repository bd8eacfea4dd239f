import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import database
import main
from config import Settings
from database import Base
from main import app, get_storage
from memory_storage import MemoryStorage
from seed import DEFAULT_ACCOUNTS, DEFAULT_CATEGORIES, seed_defaults


@pytest.fixture
def ledger():
    return MemoryStorage()


@pytest.fixture
def client(ledger):
    app.dependency_overrides[get_storage] = lambda: ledger
    yield TestClient(app)
    app.dependency_overrides.clear()


def create(client, path, payload, user_id=None):
    headers = {"X-User-Id": str(user_id)} if user_id is not None else {}
    response = client.post(path, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_march_dashboard_endpoints(client) -> None:
    cash = create(client, "/api/accounts", {"name": "Cash"})
    food = create(client, "/api/categories", {"name": "Food"})
    create(
        client,
        "/api/transactions",
        {
            "date": "2024-03-01",
            "type": "income",
            "amount_cents": 250000,
            "account_id": cash["id"],
        },
    )
    create(
        client,
        "/api/transactions",
        {
            "date": "2024-03-05",
            "type": "expense",
            "amount_cents": 4550,
            "account_id": cash["id"],
            "category_id": food["id"],
            "description": "Groceries",
        },
    )

    summary = client.get("/api/financial-summary?month=3&year=2024").json()
    assert summary["total_income_cents"] == 250000
    assert summary["total_expenses_cents"] == 4550
    assert summary["balance_cents"] == 245450
    assert "last_updated" in summary

    breakdown = client.get("/api/expenses-by-category?month=3&year=2024").json()
    assert breakdown == [
        {"category_id": food["id"], "category_name": "Food", "amount_cents": 4550}
    ]

    overview = client.get("/api/monthly-overview?month=3&year=2024").json()
    assert overview["budget_cents"] == 0
    assert overview["spent_cents"] == 4550
    assert len(overview["weekly_spending"]) == 5
    assert overview["weekly_spending"][0] == {
        "start_date": "2024-03-01",
        "end_date": "2024-03-07",
        "amount_cents": 4550,
    }


def test_created_transaction_is_first_in_listing(client) -> None:
    cash = create(client, "/api/accounts", {"name": "Cash"})
    for day in ("2024-01-10", "2024-02-10"):
        create(
            client,
            "/api/transactions",
            {"date": day, "type": "expense", "amount_cents": 100, "account_id": cash["id"]},
        )
    newest = create(
        client,
        "/api/transactions",
        {"date": "2024-03-10", "type": "expense", "amount_cents": 100, "account_id": cash["id"]},
    )

    rows = client.get("/api/transactions").json()
    assert rows[0]["id"] == newest["id"]
    assert [r["date"] for r in rows] == ["2024-03-10", "2024-02-10", "2024-01-10"]

    filtered = client.get(
        "/api/transactions", params={"start_date": "2024-02-01", "end_date": "2024-02-29"}
    ).json()
    assert [r["date"] for r in filtered] == ["2024-02-10"]


def test_validation_and_not_found_responses(client) -> None:
    cash = create(client, "/api/accounts", {"name": "Cash"})

    same_account = client.post(
        "/api/transactions",
        json={
            "date": "2024-03-01",
            "type": "transfer",
            "amount_cents": 100,
            "account_id": cash["id"],
            "to_account_id": cash["id"],
        },
    )
    assert same_account.status_code == 422

    negative = client.post(
        "/api/transactions",
        json={"date": "2024-03-01", "type": "expense", "amount_cents": -5, "account_id": cash["id"]},
    )
    assert negative.status_code == 422

    missing_account = client.post(
        "/api/transactions",
        json={"date": "2024-03-01", "type": "expense", "amount_cents": 5, "account_id": 404},
    )
    assert missing_account.status_code == 404

    assert client.get("/api/transactions/12345").status_code == 404
    assert client.delete("/api/budgets/12345").status_code == 404
    assert client.get("/api/financial-summary?month=3").status_code == 400
    assert client.get("/api/financial-summary?month=13&year=2024").status_code == 422
    assert client.get("/api/transactions?type=refund").status_code == 422


def test_crud_round_trip_and_partial_update(client) -> None:
    account = create(client, "/api/accounts", {"name": "Wallet"})
    renamed = client.put(f"/api/accounts/{account['id']}", json={"name": "Pocket"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Pocket"

    category = create(client, "/api/categories", {"name": "Fun"})
    budget = create(
        client,
        "/api/budgets",
        {"year": 2024, "month": 5, "amount_cents": 10000, "category_id": category["id"]},
    )
    assert client.get("/api/budgets?month=5&year=2024").json()[0]["id"] == budget["id"]
    assert client.get("/api/budgets?month=6&year=2024").json() == []

    bumped = client.put(f"/api/budgets/{budget['id']}", json={"amount_cents": 12000})
    assert bumped.json()["amount_cents"] == 12000
    assert bumped.json()["category_id"] == category["id"]

    progress = client.get("/api/budget-progress?month=5&year=2024").json()
    assert progress == [
        {
            "category_id": category["id"],
            "category_name": "Fun",
            "budget_cents": 12000,
            "spent_cents": 0,
            "remaining_cents": 12000,
        }
    ]

    assert client.delete(f"/api/categories/{category['id']}").status_code == 204
    assert client.get(f"/api/categories/{category['id']}").status_code == 404
    assert client.get("/api/budget-progress?month=5&year=2024").json() == []


def test_user_header_scopes_every_call(client) -> None:
    mine = create(client, "/api/accounts", {"name": "Mine"}, user_id=7)
    create(client, "/api/accounts", {"name": "Default user"})

    listed = client.get("/api/accounts", headers={"X-User-Id": "7"}).json()
    assert [a["id"] for a in listed] == [mine["id"]]
    assert listed[0]["user_id"] == 7

    assert client.get(f"/api/accounts/{mine['id']}").status_code == 404


def test_seed_defaults_is_idempotent(ledger) -> None:
    assert seed_defaults(ledger, 3) is True
    assert seed_defaults(ledger, 3) is False

    categories = ledger.list_categories(3)
    assert [c.name for c in categories] == list(DEFAULT_CATEGORIES)
    assert all(c.is_default for c in categories)
    assert [a.name for a in ledger.list_accounts(3)] == list(DEFAULT_ACCOUNTS)


def test_healthz(client) -> None:
    assert client.get("/healthz").json()["status"] == "ok"


@pytest.fixture
def db_client(monkeypatch):
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    monkeypatch.setattr(database, "SessionLocal", factory)
    monkeypatch.setattr(main, "SessionLocal", factory)
    settings = Settings(
        database_url="sqlite:///:memory:",
        storage_backend="database",
        default_user_id=1,
        seed_defaults=True,
        log_level="INFO",
    )
    monkeypatch.setattr(main, "get_settings", lambda: settings)
    with TestClient(app) as client:
        yield client
    engine.dispose()


def test_database_backend_seeds_and_persists(db_client) -> None:
    categories = db_client.get("/api/categories").json()
    assert [c["name"] for c in categories] == list(DEFAULT_CATEGORIES)
    accounts = db_client.get("/api/accounts").json()
    assert [a["name"] for a in accounts] == list(DEFAULT_ACCOUNTS)

    created = create(
        db_client,
        "/api/transactions",
        {
            "date": "2024-03-05",
            "type": "expense",
            "amount_cents": 4550,
            "account_id": accounts[0]["id"],
            "category_id": categories[0]["id"],
        },
    )
    fetched = db_client.get(f"/api/transactions/{created['id']}").json()
    assert fetched["amount_cents"] == 4550
    summary = db_client.get("/api/financial-summary?month=3&year=2024").json()
    assert summary["total_expenses_cents"] == 4550


def test_oversized_ids_are_not_found_on_database_backend(db_client) -> None:
    huge = 10**20
    for path in ("accounts", "categories", "transactions", "budgets"):
        assert db_client.get(f"/api/{path}/{huge}").status_code == 404
        assert db_client.delete(f"/api/{path}/{huge}").status_code == 404
    response = db_client.put(f"/api/transactions/{huge}", json={"amount_cents": 100})
    assert response.status_code == 404


def test_oversized_numbers_are_rejected_on_database_backend(db_client) -> None:
    account_id = db_client.get("/api/accounts").json()[0]["id"]
    huge = 10**20

    response = db_client.post(
        "/api/transactions",
        json={
            "date": "2024-03-05",
            "type": "expense",
            "amount_cents": huge,
            "account_id": account_id,
        },
    )
    assert response.status_code == 422
    assert "amount_cents" in response.text

    response = db_client.post(
        "/api/transactions",
        json={
            "date": "2024-03-05",
            "type": "expense",
            "amount_cents": 100,
            "account_id": huge,
        },
    )
    assert response.status_code == 422

    response = db_client.post(
        "/api/budgets", json={"year": 2024, "month": 3, "amount_cents": huge}
    )
    assert response.status_code == 422

    assert db_client.get(f"/api/transactions?account_id={huge}").status_code == 422
    assert db_client.get(f"/api/transactions?category_id={huge}").status_code == 422
    headers = {"X-User-Id": str(huge)}
    assert db_client.get("/api/accounts", headers=headers).status_code == 422
