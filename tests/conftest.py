"""Pytest configuration and shared fixtures."""
import os

# Settings are read on import, configure the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SALT_ROUNDS", "4")

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.core.auth import create_access_token
from app.domain.product import ProductInput
from app.domain.user import Credentials
from app.infrastructure.database import create_engine_for_url, get_session, init_db
from app.infrastructure.redis import reset_token_blacklist
from app.services import products, users


@pytest.fixture(autouse=True)
def mock_redis():
    """Auto-mock Redis for all tests so the token blacklist stays in memory."""
    reset_token_blacklist()
    with patch("app.infrastructure.redis.get_redis_client") as mock:
        mock.return_value = None
        yield mock
    reset_token_blacklist()


@pytest.fixture
def engine():
    """Fresh in-memory database for each test."""
    engine = create_engine_for_url("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def test_client(session):
    """FastAPI test client bound to the test database."""
    # Import after the environment is set up
    from main import app

    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    """Factory registering a user through the service."""
    def _make_user(username: str = "seller01", password: str = "secret123"):
        return users.register(session, Credentials(username=username, password=password))
    return _make_user


@pytest.fixture
def seller(make_user):
    return make_user("seller01")


@pytest.fixture
def buyer(make_user):
    return make_user("buyer01")


@pytest.fixture
def seller_headers(seller):
    return {"Authorization": create_access_token(seller)}


@pytest.fixture
def buyer_headers(buyer):
    """Buyer session sent with the Bearer scheme."""
    return {"Authorization": f"Bearer {create_access_token(buyer)}"}


@pytest.fixture
def make_product(session, seller):
    """Factory creating a product owned by ``seller`` unless told otherwise."""
    def _make_product(name: str = "Pixel icon pack", price: float = 4.99, owner=None):
        owner = owner or seller
        return products.create_product(
            session,
            ProductInput(name=name, price=price, image="https://cdn.example.com/item.png"),
            owner.id,
        )
    return _make_product


@pytest.fixture
def product(make_product):
    return make_product()
