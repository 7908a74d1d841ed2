# src/office_chat/db/__init__.py
"""User directory database: engine, sessions and schema helpers."""

from .session import Base, SessionLocal, create_tables, get_db

__all__ = ["Base", "SessionLocal", "create_tables", "get_db"]
