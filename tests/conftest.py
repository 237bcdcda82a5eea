# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bhromonbondhu.client import MessagingApi, UserSession
from bhromonbondhu.core.security import create_access_token
from bhromonbondhu.db.session import Base
from bhromonbondhu.db.session import get_db as app_get_session
from bhromonbondhu.main import app as fastapi_app
from bhromonbondhu.models import ROLE_HOST, ROLE_TRAVELER, Conversation, User
from bhromonbondhu.services.conversation_store import ConversationStore

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def api_http(app: FastAPI) -> Iterator[TestClient]:
    """Test client rooted at the API prefix, as the messaging client expects."""
    with TestClient(app, base_url="http://test/api") as test_client:
        yield test_client


def _create_user(db: Session, username: str, full_name: str, role: str, **extra) -> User:
    extra.setdefault("is_active", True)
    user = User(
        username=username,
        full_name=full_name,
        email=f"{username}@example.com",
        role=role,
        **extra,
    )
    db.add(user)
    db.flush()
    db.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting extra users."""

    def _factory(username: str, full_name: str, role: str = ROLE_TRAVELER, **extra) -> User:
        return _create_user(db_session, username, full_name, role, **extra)

    return _factory


@pytest.fixture()
def traveler(db_session: Session) -> User:
    """Primary traveler taking part in conversations."""
    return _create_user(db_session, "tanvir", "Tanvir Hasan", ROLE_TRAVELER)


@pytest.fixture()
def host(db_session: Session) -> User:
    """Host the traveler talks to first."""
    return _create_user(
        db_session,
        "karim",
        "Karim Ahmed",
        ROLE_HOST,
        avatar_url="https://cdn.example.com/avatars/karim.png",
    )


@pytest.fixture()
def second_host(db_session: Session) -> User:
    return _create_user(db_session, "riya", "Riya Rahman", ROLE_HOST)


@pytest.fixture()
def outsider(db_session: Session) -> User:
    """A user who is not part of any fixture conversation."""
    return _create_user(db_session, "nusrat", "Nusrat Jahan", ROLE_TRAVELER)


@pytest.fixture()
def traveler_headers(traveler: User) -> dict[str, str]:
    return bearer(traveler)


@pytest.fixture()
def host_headers(host: User) -> dict[str, str]:
    return bearer(host)


@pytest.fixture()
def outsider_headers(outsider: User) -> dict[str, str]:
    return bearer(outsider)


def _create_conversation(db: Session, traveler: User, host: User) -> Conversation:
    conversation = Conversation(
        traveler_id=traveler.id,
        host_id=host.id,
        traveler_unread=0,
        host_unread=0,
    )
    db.add(conversation)
    db.flush()
    db.refresh(conversation)
    return conversation


@pytest.fixture()
def conversation(db_session: Session, traveler: User, host: User) -> Conversation:
    """Empty conversation between the traveler and Karim."""
    return _create_conversation(db_session, traveler, host)


@pytest.fixture()
def second_conversation(db_session: Session, traveler: User, second_host: User) -> Conversation:
    """Empty conversation between the traveler and Riya."""
    return _create_conversation(db_session, traveler, second_host)


@pytest.fixture()
def store(db_session: Session) -> ConversationStore:
    return ConversationStore(db_session)


@pytest.fixture()
def traveler_api(api_http: TestClient, traveler: User) -> MessagingApi:
    """Messaging client authenticated as the traveler, talking to the app in-process."""
    session = UserSession(token=create_access_token(traveler.id), user_id=traveler.id)
    return MessagingApi(session, http_client=api_http)


@pytest.fixture()
def host_api(api_http: TestClient, host: User) -> MessagingApi:
    session = UserSession(token=create_access_token(host.id), user_id=host.id)
    return MessagingApi(session, http_client=api_http)
