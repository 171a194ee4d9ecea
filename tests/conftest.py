import os

# konfiguracja musi byc ustawiona przed pierwszym importem schoolshop
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SWEEP_IN_PROCESS"] = "false"
os.environ["VERIFY_CATALOG_PRICES"] = "true"
os.environ["FILE_STORAGE_URL"] = "http://storage.test/storage/v1"
os.environ["BCRYPT_ROUNDS"] = "4"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from schoolshop.data.database import Base, SessionLocal, engine, init_db
from schoolshop.data.models import CategoryModel, ProductModel
from schoolshop.main import create_app
from schoolshop.services.auth_service import AuthService
from schoolshop.services.storage import MemoryStorage


@pytest.fixture(autouse=True)
def _schema():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def make_product(db):
    def _make(name="Pensil 2B", price="1000", stock=10, category=None, is_active=True, sku=None):
        if category is None:
            category = db.query(CategoryModel).filter_by(name="Alat Tulis").one_or_none()
            if category is None:
                category = CategoryModel(name="Alat Tulis", is_active=True)
                db.add(category)
                db.flush()
        product = ProductModel(
            name=name,
            price=Decimal(price),
            stock=stock,
            category_id=category.id,
            is_active=is_active,
            sku=sku,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def client(storage):
    with TestClient(create_app(storage=storage)) as c:
        yield c


@pytest.fixture
def admin_headers(client, db, storage):
    AuthService(db, storage).create_admin("admin@tokoguru.id", "Admin", "rahasia123")
    response = client.post("/admin/login", json={"email": "admin@tokoguru.id", "password": "rahasia123"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
