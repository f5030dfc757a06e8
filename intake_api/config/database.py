"""Database configuration using SQLAlchemy."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .settings import settings

database_url = settings.DATABASE_URL

engine_kwargs = {"echo": settings.DEBUG, "pool_pre_ping": True}
if database_url.startswith("sqlite"):
    # SQLite connections are shared across FastAPI's threadpool
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update(pool_size=5, max_overflow=10, pool_recycle=3600)

# Sync engine; FastAPI runs the blocking calls fine for this request volume
engine = create_engine(database_url, **engine_kwargs)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    # Import all models to register them with Base
    from intake_api import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
