import pytest

from auth import AuthProvider
from dashboard import DashboardData
from database import BackendError, Database
from notifications import Notifier
from schemas import Identity
from stores import EquipmentStore, MaintenanceStore, SupportTicketStore


class UnreachableCollection:
    """Stands in for a backend collection that must never be contacted."""

    def __getattr__(self, name):
        def call(*args, **kwargs):
            raise AssertionError(f"backend contacted: {name}{args}")
        return call


def reject(*args, **kwargs):
    raise BackendError("permission denied for table")


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    yield database
    database.Session.remove()
    database.engine.dispose()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def user(db):
    row = db.add_user("tech@example.com", "secret", full_name="Test User")
    return Identity(id=row['id'], email=row['email'], full_name=row['full_name'], role=row['role'])


@pytest.fixture
def equipment_store(db, notifier, user):
    return EquipmentStore(db, notifier, user)


@pytest.fixture
def maintenance_store(db, notifier, user):
    return MaintenanceStore(db, notifier, user)


@pytest.fixture
def ticket_store(db, notifier, user):
    return SupportTicketStore(db, notifier, user)


@pytest.fixture
def auth(db):
    return AuthProvider(db)


@pytest.fixture
def data(db, notifier):
    return DashboardData(db, notifier)
