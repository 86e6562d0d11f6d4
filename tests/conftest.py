"""
Pytest fixtures for the inventory backend.

Every test gets a fresh in-memory SQLite database (StaticPool keeps the
single connection alive across sessions and the TestClient thread).
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db, make_engine
from models.users import User
from models.category import Category
from services.catalog import ProductCatalog
from services.unit_of_work import UnitOfWork
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

import models.product  # noqa: F401
import models.movement  # noqa: F401
import models.alert  # noqa: F401
import models.log  # noqa: F401


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


def _make_user(db, email, name="Owner", password="secret123"):
    user = User(email=email, password_hash=get_password_hash(password), name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def owner(db):
    return _make_user(db, "owner@example.com")


@pytest.fixture
def other_owner(db):
    return _make_user(db, "other@example.com", name="Other")


@pytest.fixture
def category(db, owner):
    cat = Category(name="Tools", user_id=owner.id)
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture
def make_product(db, owner, category):
    """Create products through the catalog, as the API does."""
    def _make(current_stock=10, min_stock=5, name="Widget", user=None, category_id=None, **catalog_kwargs):
        user = user or owner
        with UnitOfWork(db) as uow:
            change = ProductCatalog(uow, **catalog_kwargs).create_product(
                user.id,
                name=name,
                price=Decimal("9.99"),
                min_stock=min_stock,
                current_stock=current_stock,
                category_id=category_id or category.id,
            )
        db.refresh(change.product)
        return change.product
    return _make


@pytest.fixture
def client(db):
    from main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


@pytest.fixture
def other_headers(other_owner):
    return auth_headers(other_owner)
