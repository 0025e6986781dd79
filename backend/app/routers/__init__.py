"""
API Routers module.
"""
from app.routers import documents, health, schemas

__all__ = ["documents", "health", "schemas"]
