import os
from datetime import datetime, timedelta

# Application engines are replaced below; these only satisfy settings at import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["USERS_DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from approvals.auth import authenticator, hash_password
from approvals.database import Base, UsersBase
from approvals.main import app as fastapi_app
from approvals.models import AccessGrant, Collection, PaymentRequest, User

# Setup test databases, one file per logical database
PAYMENTS_DATABASE_URL = "sqlite:///./test_payments.db"
USERS_DATABASE_URL = "sqlite:///./test_users.db"

payments_engine = create_engine(PAYMENTS_DATABASE_URL, connect_args={"check_same_thread": False})
users_engine = create_engine(USERS_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=payments_engine)
TestingUsersSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=users_engine)

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=payments_engine)
    UsersBase.metadata.create_all(bind=users_engine)
    yield
    Base.metadata.drop_all(bind=payments_engine)
    UsersBase.metadata.drop_all(bind=users_engine)
    payments_engine.dispose()
    users_engine.dispose()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def users_db():
    session = TestingUsersSessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_request():
    def _make(id=None, user_id=7, collection_id=3, status="pending", minutes=0, **fields):
        session = TestingSessionLocal()
        request = PaymentRequest(
            id=id,
            user_id=user_id,
            collection_id=collection_id,
            screenshot_path=f"uploads/payment_receipts/{user_id}_{collection_id}.png",
            status=status,
            created_at=BASE_TIME + timedelta(minutes=minutes),
            **fields
        )
        session.add(request)
        session.commit()
        request_id = request.id
        session.close()
        return request_id
    return _make


@pytest.fixture
def make_user():
    def _make(id, name="Asha Rai", email=None, role="student", password=None, profile_picture=None):
        session = TestingUsersSessionLocal()
        session.add(User(
            id=id,
            name=name,
            email=email or f"user{id}@example.com",
            role=role,
            password=hash_password(password) if password else None,
            profile_picture=profile_picture,
        ))
        session.commit()
        session.close()
    return _make


@pytest.fixture
def make_collection():
    def _make(id, title="Loksewa Mock Set", price=500, discount_price=None):
        session = TestingSessionLocal()
        session.add(Collection(id=id, title=title, price=price, discount_price=discount_price))
        session.commit()
        session.close()
    return _make


@pytest.fixture
def make_grant():
    def _make(user_id, collection_id, granted_by=None):
        session = TestingSessionLocal()
        session.add(AccessGrant(user_id=user_id, collection_id=collection_id, granted_by=granted_by))
        session.commit()
        session.close()
    return _make


@pytest.fixture
def load_request():
    def _load(request_id):
        session = TestingSessionLocal()
        request = session.get(PaymentRequest, request_id)
        session.expunge_all()
        session.close()
        return request
    return _load


@pytest.fixture
def grants_for():
    def _grants(user_id, collection_id):
        session = TestingSessionLocal()
        grants = session.query(AccessGrant).filter_by(user_id=user_id, collection_id=collection_id).all()
        session.expunge_all()
        session.close()
        return grants
    return _grants


@pytest.fixture
def client(monkeypatch):
    # Point the routes at the test databases
    monkeypatch.setattr("approvals.routes.SessionLocal", TestingSessionLocal)
    monkeypatch.setattr("approvals.routes.UsersSessionLocal", TestingUsersSessionLocal)
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = authenticator.issue({"user_id": 1, "email": "admin@example.com", "role": "admin"}, 3600)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_headers():
    token = authenticator.issue({"user_id": 7, "email": "user7@example.com", "role": "student"}, 3600)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def session_factory():
    return TestingSessionLocal
