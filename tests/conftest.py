from pathlib import Path
import os
import sys

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-only-jwt-secret-key-0123456789abcdef"
os.environ.setdefault("APP_TIMEZONE", "UTC")

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest
from fastapi.testclient import TestClient

from actors import AuthenticatedActor
from auth import create_guest_token, create_user_token, get_password_hash
from database import Base, SessionLocal, engine
from models import Department, User, UserRole
from schemas import ProjectCreate

PASSWORD = "secret123"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}
    hashed = get_password_hash(PASSWORD)

    def _make(role=UserRole.STUDENT, department=Department.CS, name=None):
        counter["n"] += 1
        user = User(
            name=name or f"{role.value.title()} {counter['n']}",
            email=f"{role.value}{counter['n']}@college.edu",
            hashed_password=hashed,
            role=role,
            department=None if role == UserRole.DIRECTOR else department,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def actor_for():
    return AuthenticatedActor.from_user


@pytest.fixture
def project_input():
    def _build(title="Smart Attendance", **fields):
        return ProjectCreate(title=title, description=f"{title} description", **fields)

    return _build


@pytest.fixture
def client(db):
    from server import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    def _headers(user=None):
        token = create_user_token(user) if user is not None else create_guest_token()
        return {"Authorization": f"Bearer {token}"}

    return _headers
