import os
from decimal import Decimal
from typing import Generator

# must be set before the app modules read their configuration
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront import crud, schemas
from storefront.db import Base, enable_sqlite_foreign_keys, get_db
from storefront.main import app


@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make(first_name="Alice", last_name="Smith", **extra):
        return crud.create_user(db_session, schemas.UserCreate(first_name=first_name, last_name=last_name, **extra))
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(name="Widget", price="10.00", quantity=10, **extra):
        return crud.create_product(
            db_session,
            schemas.ProductCreate(name=name, price=Decimal(price), quantity=quantity, **extra),
        )
    return _make
