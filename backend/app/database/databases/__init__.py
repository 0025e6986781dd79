"""
Database definitions and collection constants.
"""
from app.database.databases import app_db

__all__ = ["app_db"]
