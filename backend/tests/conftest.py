"""
Fixtures shared by the unit and integration suites.

Settings are read from the environment at import time, so the .env file
(if any) is loaded here before the intellicard package is first imported.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parent.parent

for _candidate in (_BACKEND_DIR.parent / ".env", _BACKEND_DIR / ".env"):
    if _candidate.exists():
        load_dotenv(_candidate)
        break

# Use litellm's bundled model cost map; its background network fetch races
# test collection when offline.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

TEST_ENVIRONMENT = {
    "POSTGRES_USER": "intellicard_test",
    "POSTGRES_PASSWORD": "intellicard_test",
    "POSTGRES_DB": "intellicard_test",
    "OPENAI_API_KEY": "sk-test",
    "DEBUG": "true",
}


@pytest.fixture(scope="session", autouse=True)
def test_environment() -> Iterator[None]:
    """Pin credentials and debug mode for the whole session, then restore."""
    saved = dict(os.environ)
    for key, value in TEST_ENVIRONMENT.items():
        os.environ.setdefault(key, value)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """Same sections as config/default.yaml, with small pool numbers."""
    return {
        "app": {"name": "IntelliCard (tests)"},
        "database": {"pool_size": 2, "max_overflow": 1, "pool_timeout": 5},
    }


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_db_session() -> MagicMock:
    """AsyncSession stand-in: awaitable I/O methods, plain add/add_all."""
    session = MagicMock(name="AsyncSession")
    for method in ("execute", "scalar", "get", "flush", "commit", "rollback", "close", "delete"):
        setattr(session, method, AsyncMock(name=method))
    return session


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """LLM client whose complete() answers with an empty JSON array."""
    client = MagicMock(name="LLMClient")
    client.complete = AsyncMock(return_value="[]")
    return client
