"""
Pytest configuration and shared fixtures for SmartDocs tests

Provides:
- In-memory SQLite database per test
- Users with API keys (regular, admin, super admin)
- A TestClient wired to the test database
- A fake LLM service so no provider is ever called
"""

import os

# Must be set before smartdocs.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RETRY_ENABLED"] = "false"
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("MOYASAR_WEBHOOK_SECRET", "moyasar_test_secret")

import pytest
from typing import Callable, Dict, Generator
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from smartdocs.database import Base, get_db
from smartdocs.core.plans import get_token_limit
from smartdocs.core.security import generate_api_key
from smartdocs.models.user import User
from smartdocs.models.api_key import APIKey
from smartdocs.services.llm_service import LLMResult
from smartdocs.utils.time import utcnow

import smartdocs.models  # noqa: F401


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database for every test"""
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
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    """Factory for users; keyword arguments override the defaults"""
    counter = {"n": 0}

    def _make_user(**overrides) -> User:
        counter["n"] += 1
        fields = {
            "email": f"user{counter['n']}@example.com",
            "name": f"User {counter['n']}",
            "hashed_password": None,
            "role": "user",
            "is_active": True,
            "email_verified": utcnow(),
            "subscription_tier": "FREE",
            "subscription_status": "active",
            "tokens_used": 0,
            "tokens_limit": get_token_limit("FREE"),
            "referral_code": f"REF{counter['n']:05d}",
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user) -> User:
    return make_user(email="test@example.com", name="Test User")


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(email="admin@example.com", name="Admin", role="admin", admin_permissions=[])


@pytest.fixture
def super_admin(make_user) -> User:
    return make_user(email="root@example.com", name="Root", role="super_admin")


@pytest.fixture
def auth_headers(db_session) -> Callable[[User], Dict[str, str]]:
    """Issue a real API key for a user and return the Authorization header"""

    def _headers(user: User) -> Dict[str, str]:
        api_key, key_hash = generate_api_key()
        db_session.add(APIKey(user_id=user.id, key_hash=key_hash, key_prefix=api_key[:12], name="test"))
        db_session.commit()
        return {"Authorization": f"Bearer {api_key}"}

    return _headers


@pytest.fixture
def fake_llm():
    """LLMService stand-in; set fake_llm.generate.return_value per test"""
    llm = Mock()
    llm.generate = AsyncMock(return_value=LLMResult(
        content="Thanks! Tell me more about your users.",
        model="gpt-4o-mini",
        provider="openai",
        tokens_used=42,
        generation_time_ms=5,
    ))
    return llm


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """TestClient using the per-test database"""
    from smartdocs.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
