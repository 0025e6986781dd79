"""
Database module - MongoDB connection, collection schemas and database definitions.
"""
from app.database.connections import (
    get_mongo_client,
    close_connections,
)
from app.database.databases import app_db

__all__ = [
    "get_mongo_client",
    "close_connections",
    "app_db",
]
