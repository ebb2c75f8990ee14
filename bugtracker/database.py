"""
Database session management and configuration.

This module provides SQLAlchemy engine, session factory, and
dependency injection for FastAPI endpoints.
"""
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from bugtracker.config import get_settings

settings = get_settings()

# Configure connection pooling for production databases
pool_config = {}
if "postgresql" in settings.DATABASE_URL or "mysql" in settings.DATABASE_URL:
    # Production database pooling configuration
    pool_config = {
        'pool_size': 10,              # Number of connections to maintain
        'max_overflow': 20,            # Maximum number of connections beyond pool_size
        'pool_pre_ping': True,         # Verify connections before using them
        'pool_recycle': 3600,          # Recycle connections after 1 hour
    }
elif "sqlite" in settings.DATABASE_URL:
    # SQLite doesn't benefit from pooling but needs thread safety
    pool_config = {
        'connect_args': {"check_same_thread": False}
    }

# Create SQLAlchemy engine
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log SQL queries in debug mode
    **pool_config
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    The repository commits its own writes; this dependency rolls back
    anything left pending when a request fails and always closes the session.

    Usage:
        @router.get("/items/")
        def read_items(db: Session = Depends(get_db)):
            return db.query(Item).all()

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()  # Auto-rollback on error
        raise
    finally:
        db.close()


def init_db():
    """
    Initialize database tables.
    Creates all tables defined in models.

    Note: In production, use Alembic migrations instead.
    """
    from bugtracker.models.db_models import Base
    Base.metadata.create_all(bind=engine)
