# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-office-chat")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from office_chat.core.security import create_access_token
from office_chat.core.settings import Settings
from office_chat.db.session import Base
from office_chat.db.session import get_db as app_get_session
from office_chat.main import app as fastapi_app
from office_chat.models import User, UserRole
from office_chat.services.store import ChatStore

TEST_DB_URL = "sqlite://"

_TEST_SETTINGS_INSTANCE = Settings()  # type: ignore[call-arg]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN and so lets a released SAVEPOINT commit for real;
    # emit BEGIN ourselves so savepoints nest inside the per-test transaction.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

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
    # Commits made by the code under test release a savepoint on this
    # connection; the outer transaction is rolled back at teardown.
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
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
def redis_server() -> fakeredis.FakeServer:
    """Return an in-memory server shared by the async app client and sync assertions."""
    return fakeredis.FakeServer()


@pytest.fixture()
def redis_sync(redis_server: fakeredis.FakeServer) -> fakeredis.FakeRedis:
    """Return a synchronous view of the store for inspecting state in tests."""
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture()
def chat_store(redis_server: fakeredis.FakeServer) -> ChatStore:
    """Return a store handle backed by the in-memory server."""
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    return ChatStore(client=client)


@pytest.fixture(autouse=True)
def install_chat_store(app: FastAPI, chat_store: ChatStore) -> Iterator[None]:
    """Install the in-memory store so startup does not dial a real server."""
    app.state.chat_store = chat_store
    app.state.media_host = None
    try:
        yield
    finally:
        app.state.chat_store = None
        app.state.media_host = None


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


def _add_user(db_session: Session, **fields: object) -> User:
    user = User(**fields)
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> Iterator[User]:
    """Create and return a persisted test user."""
    yield _add_user(
        db_session,
        name="Alice Martin",
        email="alice@example.com",
        role=UserRole.PARTNER,
    )


@pytest.fixture()
def other_user(db_session: Session) -> Iterator[User]:
    """Create and return a second persisted user."""
    yield _add_user(
        db_session,
        name="Bob Stone",
        email="bob@example.com",
        role=UserRole.BUSINESS_CONSULTANT,
        avatar="https://cdn.example.com/bob.png",
    )


@pytest.fixture()
def inactive_user(db_session: Session) -> Iterator[User]:
    """Create a user who has been deactivated."""
    yield _add_user(
        db_session,
        name="Carol Gone",
        email="carol@example.com",
        role=UserRole.GUEST_CLIENT,
        is_active=False,
    )


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    token = create_access_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    token = create_access_token(other_user.id)
    return {"Authorization": f"Bearer {token}"}
