# access_server/database/session.py
"""
Database Session Management
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from access_server.config import settings
from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with the pool settings appropriate for the backend"""
    if database_url.startswith("sqlite"):
        # SQLite specific settings
        db_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )

        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine

    # PostgreSQL or other databases
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=echo,
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    """
    Session factory whose rows stay readable after the session is closed,
    so registry calls can hand detached Device objects to callers
    """
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=bind,
    )


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Session factory
SessionLocal = create_session_factory(engine)


def init_db(bind: Engine = None) -> None:
    """
    Initialize database tables
    Call this on application startup
    """
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database initialized successfully")


class DatabaseManager:
    """
    Database manager for health checks
    """

    def __init__(self, bind: Engine):
        self.bind = bind

    def check_connection(self) -> bool:
        """Check if database connection is healthy"""
        try:
            with self.bind.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False


# Export
db_manager = DatabaseManager(engine)
