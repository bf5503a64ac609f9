from unittest.mock import MagicMock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from main import create_app
from vehicle_app.db import create_store_engine, get_db
from vehicle_app.settings import Settings


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.fixture
def app():
    # a fresh in-memory database per test
    engine = create_store_engine("sqlite://")
    return create_app(settings=Settings(database_url="sqlite://"), engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def vehicle_payload():
    return {
        "vin": "ABCDEFGH000001",
        "manufacturer": "Honda",
        "description": "Silver sedan",
        "horsePower": 185,
        "modelName": "Accord",
        "modelYear": 2020,
        "purchasePrice": 23000,
        "fuelType": "gasoline",
    }


@pytest.fixture
def mock_db_session_unreachable():
    # Create a mock database session whose every statement fails
    mock_session = MagicMock()
    error = OperationalError("SELECT", {}, FakeDriverError("connection refused"))
    mock_session.query.side_effect = error
    mock_session.execute.side_effect = error
    return mock_session


@pytest.fixture
def mock_db_session_duplicate():
    # Create a mock database session reporting a unique index violation
    mock_session = MagicMock()
    mock_session.execute.side_effect = IntegrityError(
        "INSERT", {}, FakeDriverError("duplicate key value", sqlstate="23505")
    )
    return mock_session


@pytest.fixture
def failing_client(app, mock_db_session_unreachable):
    app.dependency_overrides[get_db] = lambda: mock_db_session_unreachable
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_db_session_not_null():
    # Create a mock database session reporting a non-unique integrity failure
    mock_session = MagicMock()
    mock_session.execute.side_effect = IntegrityError(
        "INSERT", {}, FakeDriverError("null value in column", sqlstate="23502")
    )
    return mock_session


@pytest.fixture
def mock_db_session_broken():
    # Create a mock database session failing outside of SQLAlchemy
    mock_session = MagicMock()
    mock_session.execute.side_effect = RuntimeError("driver crashed")
    return mock_session


@pytest.fixture
def lenient_client(app):
    # unhandled errors come back as responses instead of being re-raised
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
