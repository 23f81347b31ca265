import os
import tempfile
import threading

os.environ.setdefault("FOODCOURT_TESTING", "true")
os.environ.setdefault(
    "FOODCOURT_DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(tempfile.gettempdir(), 'foodcourt-tests.db')}",
)
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("XENDIT_WEBHOOK_TOKEN", "test-callback-token")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import foodcourt.models  # noqa: E402,F401
from foodcourt.config import settings  # noqa: E402
from foodcourt.db.base import Base  # noqa: E402
from foodcourt.db.session import engine as app_engine  # noqa: E402
from foodcourt.db.session import get_db  # noqa: E402
from foodcourt.main import app  # noqa: E402
from foodcourt.services import catalog_service, merchant_service, session_service  # noqa: E402

MERCHANT_PASSWORD = "rahasia123"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"


@pytest.fixture(scope="session", autouse=True)
def enable_testing_mode():
    original = settings.testing
    settings.testing = True
    yield
    settings.testing = original


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield


@pytest.fixture
def db_session():
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db_session):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db_session_lock = threading.Lock()

    def override_get_db():
        if db_session_lock.acquire(blocking=False):
            try:
                yield db_session
            finally:
                db_session_lock.release()
            return

        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_merchant(db_session):
    counter = {"value": 0}

    def _make(name: str = "Warung Bu Sri", phone_number: str | None = None, **fields):
        counter["value"] += 1
        return merchant_service.create_merchant(
            db_session,
            phone_number=phone_number or f"+62812000000{counter['value']:02d}",
            password=MERCHANT_PASSWORD,
            name=name,
            **fields,
        )

    return _make


@pytest.fixture
def make_category(db_session):
    def _make(merchant, name: str = "Makanan"):
        return catalog_service.create_category(db_session, merchant.id, name)

    return _make


@pytest.fixture
def make_menu(db_session, make_category):
    def _make(merchant, name: str = "Nasi Goreng", price: int = 15000, category=None, **fields):
        category = category or make_category(merchant, f"Kategori {name}")
        return catalog_service.create_menu(
            db_session, merchant.id, category_id=category.id, name=name, price=price, **fields
        )

    return _make


@pytest.fixture
def buyer_session(db_session):
    return session_service.create_session(db_session, table_number=7)


@pytest.fixture
def login_merchant(client):
    def _login(merchant):
        response = client.post(
            "/api/merchants/login",
            json={"phoneNumber": merchant.phone_number, "password": MERCHANT_PASSWORD},
        )
        assert response.status_code == 200
        return response

    return _login


@pytest.fixture
def login_admin(client):
    def _login():
        response = client.post(
            "/api/admin/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 200
        return response

    return _login
