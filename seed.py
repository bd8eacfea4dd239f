import logging

from models import Account, Category
from storage import LedgerStorage

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "Food",
    "Transportation",
    "Housing",
    "Entertainment",
    "Healthcare",
    "Shopping",
    "Utilities",
    "Education",
    "Savings",
    "Other",
)

DEFAULT_ACCOUNTS = ("Cash", "Bank Account", "Credit Card")


def seed_defaults(storage: LedgerStorage, user_id: int) -> bool:
    """Give a brand-new user the starter categories and accounts.

    Users that already own any category or account are left untouched.
    Returns True when something was created.
    """
    if storage.list_categories(user_id) or storage.list_accounts(user_id):
        return False
    for name in DEFAULT_CATEGORIES:
        storage.add_category(Category(user_id=user_id, name=name, is_default=True))
    for name in DEFAULT_ACCOUNTS:
        storage.add_account(Account(user_id=user_id, name=name))
    logger.info(
        f"seed_defaults: user={user_id} categories={len(DEFAULT_CATEGORIES)} "
        f"accounts={len(DEFAULT_ACCOUNTS)}"
    )
    return True
