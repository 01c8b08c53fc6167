"""
Database modules
"""

from .session import init_db, db_manager, SessionLocal, engine, create_db_engine, create_session_factory
from .models import Base, Device

__all__ = [
    # Session
    "init_db",
    "db_manager",
    "SessionLocal",
    "engine",
    "create_db_engine",
    "create_session_factory",
    # Models
    "Base",
    "Device",
]
