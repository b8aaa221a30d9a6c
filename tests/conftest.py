"""
Nursing Portal - Test Configuration and Fixtures
"""
import os
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from beanie import init_beanie
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

# Set testing environment
os.environ['DEBUG'] = 'true'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RELAY_INDIVIDUAL_WEBHOOK'] = 'http://relay.test/individual'
os.environ['RELAY_BULK_WEBHOOK'] = 'http://relay.test/bulk'

from nursing_portal.main import app
from nursing_portal.api.deps import get_current_user
from nursing_portal.db import DOCUMENT_MODELS
from nursing_portal.models.user import UserRole


@pytest.fixture
def instructor():
    """Authenticated instructor injected in place of the JWT lookup"""
    return SimpleNamespace(
        id='instructor-1',
        email='instructor@school.test',
        role=UserRole.INSTRUCTOR,
        full_name='Test Instructor',
        is_active=True,
    )


@pytest.fixture
async def client(instructor) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with the auth dependency overridden"""
    async def override_current_user():
        return instructor

    app.dependency_overrides[get_current_user] = override_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac


@pytest.fixture
async def mongo():
    """Fresh in-memory MongoDB with every document model registered"""
    client = AsyncMongoMockClient()
    database = client['nursing_portal_test']
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    yield database
