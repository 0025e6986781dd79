"""
Global test fixtures for vaultschema.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor)
- The built-in app.users schema and sample user documents
- Schema file utilities
- FastAPI test clients
"""

import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator
from uuid import UUID

import pytest
import pytest_asyncio
from bson.binary import Binary
from fastapi.testclient import TestClient

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

# Tests never reach a real MongoDB on startup
os.environ["APPLY_SCHEMAS_ON_STARTUP"] = "false"
os.environ.pop("SCHEMA_FILE", None)


USERS_KEY_ID = UUID("d1594b63-65c2-40b0-82ca-adfa1529cc7d")
DETERMINISTIC = "AEAD_AES_256_CBC_HMAC_SHA_512-Deterministic"
RANDOM = "AEAD_AES_256_CBC_HMAC_SHA_512-Random"


# =============================================================================
# Schema Fixtures
# =============================================================================

@pytest.fixture
def users_json_schema() -> dict:
    """The $jsonSchema of the app.users collection, as the setup script declares it."""
    return {
        "bsonType": "object",
        "required": ["username", "password"],
        "encryptMetadata": {
            "keyId": [Binary.from_uuid(USERS_KEY_ID)],
            "algorithm": DETERMINISTIC,
        },
        "properties": {
            "username": {"bsonType": "string"},
            "password": {"encrypt": {"bsonType": "string", "algorithm": RANDOM}},
            "ssn": {"encrypt": {"bsonType": "string", "algorithm": DETERMINISTIC}},
            "detailMessage": {"encrypt": {"bsonType": "string"}},
            "createdAt": {"bsonType": "date"},
        },
    }


@pytest.fixture
def users_record() -> dict:
    """The same schema in the flat record shape."""
    return {
        "requiredFields": ["username", "password"],
        "encryptMetadata": {"keyId": str(USERS_KEY_ID), "algorithm": DETERMINISTIC},
        "fields": {
            "username": {"type": "string", "encrypted": False},
            "password": {"type": "string", "encrypted": True, "algorithm": RANDOM},
            "ssn": {"type": "string", "encrypted": True, "algorithm": DETERMINISTIC},
            "detailMessage": {"type": "string", "encrypted": True},
            "createdAt": {"type": "date", "encrypted": False},
        },
        "validationLevel": "strict",
        "validationAction": "error",
    }


@pytest.fixture
def users_schema(users_json_schema):
    """SchemaDefinition of app.users (strict, error)."""
    from app.services.schema_loader import parse_json_schema
    return parse_json_schema(users_json_schema)


@pytest.fixture
def make_users_schema(users_json_schema):
    """Factory for app.users schemas with another level/action."""
    from app.services.schema_loader import parse_json_schema

    def _make(level: str = "strict", action: str = "error"):
        return parse_json_schema(users_json_schema, level, action)

    return _make


@pytest.fixture
def schema_file(tmp_path, users_record):
    """
    Write an Extended JSON schema file with two namespaces.

    Returns:
        Path to the file
    """
    content = {
        "app.users": {
            "$jsonSchema": {
                "bsonType": "object",
                "required": ["username", "password"],
                "encryptMetadata": {
                    "keyId": [{"$uuid": str(USERS_KEY_ID)}],
                    "algorithm": DETERMINISTIC,
                },
                "properties": {
                    "username": {"bsonType": "string"},
                    "password": {"encrypt": {"bsonType": "string", "algorithm": RANDOM}},
                },
            },
            "validationLevel": "strict",
            "validationAction": "error",
        },
        "hr.employees": users_record,
    }
    path = tmp_path / "schemas.json"
    path.write_text(json.dumps(content))
    return path


# =============================================================================
# Document Fixtures
# =============================================================================

@pytest.fixture
def user_document() -> dict[str, Any]:
    """A complete, valid app.users document before encryption."""
    return {
        "username": "alice",
        "password": "secret",
        "ssn": "123-45-6789",
        "detailMessage": "first login",
        "createdAt": datetime(2024, 10, 15, 12, 0, tzinfo=timezone.utc),
    }


# =============================================================================
# MongoDB Fixtures (mongomock)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
        client = AsyncMongoMockClient()
        yield client
        client.close()
    except ImportError:
        pytest.skip("mongomock-motor not installed")


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app():
    """
    Create FastAPI app for testing.

    Dependency overrides set by a test are cleared afterwards.
    """
    from app.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator:
    """
    Create a TestClient for the FastAPI app.

    Use this for synchronous endpoint testing.
    """
    with TestClient(app) as c:
        yield c


@pytest_asyncio.fixture
async def async_client(app):
    """
    Create an async test client.

    Use this for testing async endpoints.
    """
    from httpx import AsyncClient, ASGITransport

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def post_extended_json(client):
    """
    POST a body serialized as MongoDB Extended JSON.

    Keeps BSON types such as datetime and ObjectId intact.

    Usage:
        response = post_extended_json("/schemas/app.users/validate", document)
    """
    from bson import json_util

    def _post(url: str, body: Any):
        return client.post(
            url,
            content=json_util.dumps(body),
            headers={"Content-Type": "application/json"},
        )

    return _post
