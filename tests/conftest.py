import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from ledger_service import models  # noqa: F401
from ledger_service.db import get_session
from ledger_service.main import app
from ledger_service.models import User
from ledger_service.security import create_token, hash_password
from ledger_service.storage import LocalStorage, get_storage


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage")


@pytest.fixture
def client(engine, storage):
    def override_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(engine):
    """Create a user row and return (user_id, auth headers)."""
    def _make(email="ana@example.com"):
        with Session(engine) as s:
            user = User(email=email, password_hash=hash_password("secret123"))
            s.add(user)
            s.commit()
            user_id = user.id
        return user_id, {"Authorization": f"Bearer {create_token(user_id)}"}
    return _make


@pytest.fixture
def headers(make_user):
    return make_user()[1]


@pytest.fixture
def make_account(client, headers):
    def _make(balance="500", institution="Nubank", auth=None):
        resp = client.post(
            "/api/bank-accounts",
            json={"name": institution, "institution": institution, "balance": balance},
            headers=auth or headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]
    return _make


@pytest.fixture
def balance_of(client, headers):
    def _balance(account_id, auth=None):
        resp = client.get(f"/api/bank-accounts/{account_id}", headers=auth or headers)
        assert resp.status_code == 200, resp.text
        return resp.json()["balance"]
    return _balance
