"""Pytest configuration and fixtures for worker tests.

These fixtures enable testing Celery tasks without requiring:
- Running Redis/Celery
- Database connections
- Reddit, the inference endpoint or a headless browser
"""

import os
import sys
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

# Add worker package to path
worker_path = Path(__file__).parent.parent
sys.path.insert(0, str(worker_path))

# Set test environment variables before importing celery_app
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TOKEN_LOCK_BACKEND", "local")


@pytest.fixture(scope="session")
def celery_config() -> dict[str, Any]:
    """Celery configuration for testing."""
    return {
        "broker_url": "memory://",
        "result_backend": "cache+memory://",
        "task_always_eager": True,
        "task_eager_propagates": True,
    }


@pytest.fixture
def mock_celery_app():
    """Celery app configured for eager (synchronous) execution."""
    from redwatch_worker.celery_app import app

    app.conf.update(
        task_always_eager=True,
        task_eager_propagates=False,
    )
    return app


@pytest.fixture
def mock_db_session():
    """Create a mock database session."""
    session = MagicMock()
    session.commit = MagicMock()
    session.rollback = MagicMock()
    session.close = MagicMock()
    return session


@pytest.fixture
def fernet_key() -> str:
    from cryptography.fernet import Fernet

    return Fernet.generate_key().decode()


@pytest.fixture
def worker_settings(fernet_key):
    """Real Settings with everything pointed at local test values."""
    from redwatch_core.config import Settings

    return Settings(
        database_url="sqlite://",
        encryption_key=fernet_key,
        token_lock_backend="local",
        reddit_client_id="test_client_id",
        reddit_client_secret="test_client_secret",
        reddit_user_agent="redwatch-tests/1.0",
        _env_file=None,
    )


@pytest.fixture
def mock_task_request():
    """Create a mock Celery task request object."""
    request = MagicMock()
    request.id = "test-task-id-123"
    request.retries = 0
    return request
