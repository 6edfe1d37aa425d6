import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from database import Base, get_db
from dependencies import get_cache_client
from main import app
from models.category import Category
from models.product import Product
from models.users import User, UserRole
from utils.cache import MemoryCacheClient
from utils.hashing import get_password_hash
from utils.tokenJWT import token_for_user

PASSWORD = "Secret123!"

ADDRESS = {
    "firstName": "Amina",
    "lastName": "Benali",
    "street": "4 rue des Lilas",
    "postalCode": "93100",
    "city": "Montreuil",
}


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cache_client():
    return MemoryCacheClient()


@pytest.fixture
def client(session_factory, cache_client):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_client] = lambda: cache_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role=UserRole.CLIENT.value, **kwargs):
    user = User(
        email=email,
        password_hash=get_password_hash(PASSWORD),
        role=role,
        first_name=kwargs.pop("first_name", "Amina"),
        last_name=kwargs.pop("last_name", "Benali"),
        accepts_terms=True,
        **kwargs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user):
    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture
def user(db):
    return make_user(db, "client@example.com")


@pytest.fixture
def other_user(db):
    return make_user(db, "other@example.com", first_name="Karim")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=UserRole.ADMIN.value)


@pytest.fixture
def auth_headers(user):
    return headers_for(user)


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def category(db):
    cat = Category(name="Épicerie", slug="epicerie", position=0, is_active=True)
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture
def make_product(db, category):
    counter = {"n": 0}

    def _make(price=10.0, promo_price=None, stock=10, tax_rate=20.0, is_active=True, name=None):
        counter["n"] += 1
        n = counter["n"]
        product = Product(
            reference=f"REF-{n:03d}",
            name=name or f"Produit {n}",
            slug=f"produit-{n}",
            price=price,
            promo_price=promo_price,
            tax_rate=tax_rate,
            unit="pièce",
            stock_quantity=stock,
            is_active=is_active,
            category_id=category.id,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


def stock_of(db, product):
    db.expire_all()
    return db.get(Product, product.id).stock_quantity
