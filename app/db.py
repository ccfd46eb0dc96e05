"""
Database connection and setup
Likes are stored through SQLAlchemy; SQLite by default
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base
from config.settings import settings

logger = logging.getLogger("db")


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for the likes database.
    SQLite needs check_same_thread=False because FastAPI runs sync routes
    in a threadpool; in-memory SQLite also needs a single shared connection.
    """
    kwargs = {"echo": False}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


DATABASE_URL = settings.likes_database_url

engine = make_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = None):
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Likes database initialized at: {bind.url}")


def get_db():
    """
    Get database session - use in FastAPI dependencies
    Yields a session and closes it when done
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
