"""
Database session management for SmartDocs
SQLAlchemy engine, session factory and FastAPI dependency
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from smartdocs.config import settings

# pool_pre_ping: Verify connections before using them
# echo: Log all SQL statements when DEBUG=True
_engine_kwargs = {"pool_pre_ping": True, "echo": settings.DEBUG}
if settings.DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI endpoints to get database session
    Rolls back on exceptions and always closes the session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """
    Create all tables in the database
    Called during application startup
    """
    # Import models so they're registered with Base.metadata
    import smartdocs.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
