import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from dataBase import get_db_session
from models.models import Base, User
from utils.security import hash_password, create_access_token


@pytest.fixture(scope="function")
def session_for_tests():
    """Fresh in-memory database for every test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def app_with_overrides(session_for_tests):
    def override_get_db_session():
        try:
            yield session_for_tests
        finally:
            pass

    app.dependency_overrides[get_db_session] = override_get_db_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(scope="function", autouse=True)
def sent_emails(monkeypatch):
    """Record outgoing e-mails instead of talking to an SMTP server."""
    sent = []

    def fake_send_email(email, token, email_type):
        sent.append({"email": email, "token": token, "type": email_type})
        return True

    monkeypatch.setattr("endpoints.auth.send_email", fake_send_email)
    return sent


@pytest.fixture(scope="function")
def verified_user(session_for_tests):
    user = User(
        email="owner@example.com",
        password_hash=hash_password("Secret123!"),
        first_name="Ana",
        last_name="Owner",
        is_verified=True,
    )
    session_for_tests.add(user)
    session_for_tests.commit()
    session_for_tests.refresh(user)
    return user


@pytest.fixture(scope="function")
def auth_headers(verified_user):
    return {"Authorization": f"Bearer {create_access_token(verified_user)}"}
