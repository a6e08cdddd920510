"""
Database connection and session management
"""
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from controlstock.config import settings


def build_engine(url: str) -> Engine:
    """Create an engine for url. SQLite gets thread-sharing; server databases get a pool."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = pool.StaticPool
        return create_engine(url, echo=settings.DEBUG, **kwargs)
    return create_engine(
        url,
        poolclass=pool.QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        connect_args={"connect_timeout": 10},
        echo=settings.DEBUG,
    )


engine = build_engine(settings.database_connection_string)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI to get database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Create all tables that do not exist yet."""
    from controlstock import models  # noqa: F401  (registers mappers)
    Base.metadata.create_all(bind=bind or engine)
