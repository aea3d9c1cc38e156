"""Shared pytest fixtures for Careerline tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from careerline.db.connection import Database
from careerline.hierarchy.closure import ClosureMaintainer
from careerline.hierarchy.permissions import PermissionFilter
from careerline.hierarchy.queries import TreeQueryService
from careerline.hierarchy.router import (
    get_node_service,
    get_permission_filter,
    get_query_service,
)
from careerline.hierarchy.rules import HierarchyValidator
from careerline.hierarchy.service import NodeService
from careerline.insights.router import get_insight_service
from careerline.insights.service import InsightService
from careerline.main import app


@pytest.fixture
async def db(tmp_path):
    """File database per test, so reads use the separate reader connection."""
    database = await Database.connect(str(tmp_path / "careerline.db"))
    yield database
    await database.close()


@pytest.fixture
async def memory_db():
    """In-memory database: one connection for reads and writes."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def validator(db):
    return HierarchyValidator(db)


@pytest.fixture
async def closure(db):
    return ClosureMaintainer(db)


@pytest.fixture
async def queries(db):
    return TreeQueryService(db)


@pytest.fixture
async def node_service(db, validator):
    return NodeService(db, validator)


@pytest.fixture
async def insight_service(db):
    return InsightService(db, PermissionFilter())


@pytest.fixture
async def client(db):
    """Async test client with in-memory DB wired into the app."""
    permissions = PermissionFilter()
    node_service = NodeService(db)
    queries = TreeQueryService(db)
    insight_service = InsightService(db, permissions)
    app.dependency_overrides[get_node_service] = lambda: node_service
    app.dependency_overrides[get_query_service] = lambda: queries
    app.dependency_overrides[get_permission_filter] = lambda: permissions
    app.dependency_overrides[get_insight_service] = lambda: insight_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
