import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from database_storage import DatabaseStorage
from memory_storage import MemoryStorage


@pytest.fixture(params=["memory", "database"])
def storage(request):
    if request.param == "memory":
        yield MemoryStorage()
        return
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield DatabaseStorage(session)
    engine.dispose()
