"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with backend-specific helpers
for testing FastAPI routes, services, and database operations.
"""

import sys
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "backend"))


# =============================================================================
# Database Override Fixtures
# =============================================================================

@pytest.fixture
def memory_mongo_client():
    """
    mongomock-motor client created outside the event loop.

    For synchronous TestClient tests that read back what an endpoint wrote.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")
    client = AsyncMongoMockClient()
    yield client
    client.close()


# =============================================================================
# Schema Registry Fixtures
# =============================================================================

@pytest.fixture
def schema_registry(users_schema, make_users_schema):
    """
    Registry with app.users (strict, error) and app.audit (warn action).
    """
    from app.database.registry import SchemaRegistry

    return SchemaRegistry({
        "app.users": users_schema,
        "app.audit": make_users_schema(level="warn", action="warn"),
    })


@pytest.fixture
def app_with_registry(app, schema_registry, memory_mongo_client):
    """
    The FastAPI app wired to schema_registry and an in-memory MongoDB
    standing in for an auto-encrypting client.

    Overrides both the registry and the DocumentService dependencies.
    """
    from app.dependencies.schemas import get_document_service, get_schema_registry
    from app.services.document_service import DocumentService

    service = DocumentService(memory_mongo_client, schema_registry, auto_encryption=True)
    app.dependency_overrides[get_schema_registry] = lambda: schema_registry
    app.dependency_overrides[get_document_service] = lambda: service
    yield app


@pytest.fixture
def client_with_registry(app_with_registry):
    """TestClient using the overridden app."""
    from fastapi.testclient import TestClient

    with TestClient(app_with_registry) as c:
        yield c


# =============================================================================
# Response Assertion Helpers
# =============================================================================

@pytest.fixture
def assert_rejection():
    """Helper to assert a 422 rejection payload."""
    def _assert(response, error: str, field: str):
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == error
        assert detail["field"] == field
        assert field in detail["message"]
    return _assert
