from concurrent.futures import ThreadPoolExecutor

from memory_storage import MemoryStorage
from models import Account


def test_concurrent_inserts_get_distinct_ids() -> None:
    ledger = MemoryStorage()

    def add_many(worker: int) -> None:
        for i in range(1000):
            ledger.add_account(Account(user_id=1, name=f"acct-{worker}-{i}"))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(add_many, range(8)))

    accounts = ledger.list_accounts(1)
    assert len(accounts) == 8000
    assert sorted(a.id for a in accounts) == list(range(1, 8001))


def test_oversized_ids_are_simply_missing() -> None:
    ledger = MemoryStorage()
    assert ledger.get_transaction(10**20) is None
    assert ledger.delete_budget(10**20) is False
