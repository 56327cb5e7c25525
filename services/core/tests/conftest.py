"""Pytest configuration and fixtures for Redwatch Core tests.

This module provides fixtures for:
- Database: SQLite in-memory with foreign keys enforced
- Crypto: a fresh Fernet key per test
- Settings cache reset between tests
"""

import os
from collections.abc import Generator

import pytest
from sqlalchemy import StaticPool, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from redwatch_core.config import Settings
from redwatch_core.domain.models import Base

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TOKEN_LOCK_BACKEND", "local")


# -----------------------------------------------------------------------------
# Test Settings
# -----------------------------------------------------------------------------


@pytest.fixture
def test_settings(crypto_key) -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        database_url="sqlite+pysqlite:///:memory:",
        redis_url="redis://localhost:6379/15",  # Use DB 15 for tests
        encryption_key=crypto_key,
        token_lock_backend="local",
        reddit_client_id="test_client_id",
        reddit_client_secret="test_client_secret",
        reddit_user_agent="redwatch-tests/1.0",
        _env_file=None,
    )


# -----------------------------------------------------------------------------
# Synchronous Database Fixtures
# -----------------------------------------------------------------------------


def create_schema(engine) -> None:
    """Create all tables on a SQLite engine."""
    # SQLite only autoincrements INTEGER PRIMARY KEY, so compile BIGINT as
    # INTEGER while the tables are created
    from sqlalchemy.dialects import sqlite
    original_visit = sqlite.dialect.type_compiler_cls.visit_BIGINT
    sqlite.dialect.type_compiler_cls.visit_BIGINT = lambda self, type_, **kw: "INTEGER"
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        sqlite.dialect.type_compiler_cls.visit_BIGINT = original_visit

@pytest.fixture
def sync_engine():
    """Create a synchronous SQLite in-memory engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    create_schema(engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sync_session_factory(sync_engine) -> sessionmaker[Session]:
    """Create a synchronous session factory."""
    return sessionmaker(
        bind=sync_engine,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
def db_session(sync_session_factory) -> Generator[Session, None, None]:
    """Create a synchronous database session for testing."""
    session = sync_session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# -----------------------------------------------------------------------------
# Crypto Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def crypto_key() -> str:
    """Generate a test encryption key."""
    from redwatch_core.infrastructure.crypto import CryptoService

    return CryptoService.generate_key()


@pytest.fixture
def crypto(crypto_key):
    """CryptoService with a fresh key."""
    from redwatch_core.infrastructure.crypto import CryptoService

    return CryptoService(crypto_key)


# -----------------------------------------------------------------------------
# Cleanup Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    from redwatch_core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def snapshot_engine(tmp_path):
    """File-backed SQLite engine where each transaction reads one snapshot.

    WAL mode plus an explicit BEGIN on every transaction gives readers the
    repeatable-read behaviour of InnoDB, so separate sessions behave like
    separate worker processes.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'redwatch.db'}")

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        # Let SQLAlchemy's begin event control transactions
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    create_schema(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def snapshot_session_factory(snapshot_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=snapshot_engine, autocommit=False, autoflush=False)
