"""API test fixtures: the app bound to the per-test SQLite database."""

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.api.app import create_app
from period_engine.api.dependencies import get_db_session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    return {"X-User-ID": str(admin.user_id), "X-User-Role": admin.role}


@pytest.fixture
def clerk_headers(clerk) -> dict[str, str]:
    return {
        "X-User-ID": str(clerk.user_id),
        "X-User-Role": clerk.role,
        "X-Center-ID": str(clerk.center_id),
    }


@pytest.fixture
def outsider_headers(other_center) -> dict[str, str]:
    """A clerk assigned to ``other_center``."""
    return {
        "X-User-ID": str(uuid4()),
        "X-User-Role": "payroll_clerk",
        "X-Center-ID": str(other_center.center_id),
    }
