import sys
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Now import after path is set
from datetime import datetime, timedelta

import pytest

from database import create_store_engine, init_schema
from services.data_store import DataStore
from services.persistence_gateway import PersistenceGateway


class FakeClock:
    """Controllable time source for timestamped operations"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    """Create in-memory database for testing"""
    engine = create_store_engine('sqlite:///:memory:')
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def gateway(engine):
    gateway = PersistenceGateway(engine)
    yield gateway
    gateway.close()


@pytest.fixture
def db_session(gateway):
    return gateway.begin_session()


@pytest.fixture
def clock():
    return FakeClock(datetime(2010, 7, 28, 18, 0, 0))


@pytest.fixture
def store(gateway, clock):
    store = DataStore(gateway, clock=clock)
    yield store
    store.close()


@pytest.fixture
def beer(store):
    return store.update_beer_with_id(
        "stella", "Stella Artois", "A pilsner", "Lager / Pilsner", "Belgium", "stella.png", 5.2
    )


@pytest.fixture
def keg(store, beer):
    return store.add_or_update_keg_with_id("keg-1", beer, 0.0, 58.67)


@pytest.fixture
def user(store):
    return store.add_or_update_user_with_rfid("04A2B1C3", "Gabe")
