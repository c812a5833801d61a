import sys
import os
from uuid import uuid4

import pytest
import pytest_asyncio

# Add app to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from app.core.db import close_db, init_db


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory SQLite database per test. Row locks are no-ops on SQLite."""
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest.fixture
def tenant_id():
    return uuid4()
