import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import threading
from contextlib import contextmanager
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopcart.api import create_app
from shopcart.api.deps import get_lock_service, get_product_client
from shopcart.data.database import Base, get_db
from shopcart.data.models import CartLineModel  # noqa: F401
from shopcart.domain.errors import CartLockedError
from shopcart.domain.product import ProductSnapshot
from shopcart.repos.cart_repo import CartRepo
from shopcart.services.cart_service import CartService


class FakeCatalog:
    """In-memory product catalog with the same get_product contract as ProductClient."""

    def __init__(self):
        self.products = {}

    def put(self, product_id, price="10.00", stock=10, sale_price=None, is_active=True):
        self.products[product_id] = ProductSnapshot(
            id=product_id,
            is_active=is_active,
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price is not None else None,
            stock=stock,
        )
        return self.products[product_id]

    def get_product(self, product_id):
        return self.products.get(product_id)


class FakeRedis:
    """Minimal thread-safe redis double: SET NX EX and the compare-and-delete script."""

    def __init__(self):
        self.store = {}
        self._mutex = threading.Lock()

    def set(self, name, value, nx=False, ex=None):
        with self._mutex:
            if nx and name in self.store:
                return None
            self.store[name] = value
            return True

    def eval(self, script, numkeys, key, token):
        with self._mutex:
            if self.store.get(key) == token:
                del self.store[key]
                return 1
            return 0


class InMemoryLockService:
    """Owner lock without redis; a held key is reported as locked."""

    def __init__(self):
        self.held = set()
        self.acquired = []

    @contextmanager
    def owner_lock(self, key, ttl=30):
        if key in self.held:
            raise CartLockedError(key)
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield key
        finally:
            self.held.discard(key)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def locks():
    return InMemoryLockService()


@pytest.fixture
def repo(db):
    return CartRepo(db)


@pytest.fixture
def service(db, catalog, locks):
    return CartService(db=db, product_client=catalog, lock_service=locks)


@pytest.fixture
def test_client(session_factory, catalog, locks):
    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_product_client] = lambda: catalog
    app.dependency_overrides[get_lock_service] = lambda: locks

    return TestClient(app)
