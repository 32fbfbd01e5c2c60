"""
Global pytest configuration and fixtures for the Xero Sync test suite.
"""

import os

# Set test environment variables before settings are loaded
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ["XERO_ENCRYPTION_KEY"] = "test-encryption-key"

from typing import Dict, Generator  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from xero_sync.core.settings import settings  # noqa: E402
from xero_sync.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.order_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.store_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.xero_fixtures import *  # noqa: F403, F401, E402


def make_token(role: str) -> str:
    return jwt.encode(
        {"sub": f"{role}-1", "role": role}, settings.JWT_SECRET, algorithm="HS256"
    )


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client without the Prisma lifespan."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('admin')}"}


@pytest.fixture
def service_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('service')}"}
