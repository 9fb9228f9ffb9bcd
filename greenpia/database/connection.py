"""
Database Connection Management for Greenpia

Provides database engine, session factory, and initialization utilities.
Connectivity failures surface as DataStoreUnavailable so the API can
answer 503 instead of a generic 500.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from greenpia.config import load_config
from greenpia.utils import get_logger

logger = get_logger(__name__)

# Global engine and session factory (initialized once)
_engine = None
_SessionFactory = None


class DataStoreUnavailable(Exception):
    """Raised when the relational store cannot be reached"""


def get_engine():
    """
    Get SQLAlchemy engine (singleton)

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        config = load_config()

        db_url = config.get_required('database.url')
        echo = bool(config.get('database.echo', False))

        if db_url.startswith('sqlite'):
            # SQLite: no server pool; in-memory databases share one connection
            engine_kwargs = {'connect_args': {'check_same_thread': False}}
            if db_url in ('sqlite://', 'sqlite:///:memory:'):
                engine_kwargs['poolclass'] = StaticPool

            _engine = create_engine(db_url, echo=echo, **engine_kwargs)
            logger.info(f"Database engine created: {db_url}")
        else:
            # Connection pool - NO defaults (Fast Fail)
            min_conn = config.get_required('database.pool.min_connections')
            max_conn = config.get_required('database.pool.max_connections')
            pool_recycle = config.get_required('database.pool.pool_recycle')

            _engine = create_engine(
                db_url,
                pool_size=min_conn,
                max_overflow=max_conn - min_conn,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,  # Test connections before using
                echo=echo
            )

            host = db_url.rsplit('@', 1)[-1]
            logger.info(f"Database engine created: {host} (pool: {min_conn}-{max_conn})")

    return _engine


def get_session_factory():
    """
    Get SQLAlchemy session factory (singleton)

    Returns:
        SessionMaker instance
    """
    global _SessionFactory

    if _SessionFactory is None:
        engine = get_engine()
        _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.debug("Session factory created")

    return _SessionFactory


def reset_engine():
    """Dispose the engine and forget the session factory (tests, reconfiguration)"""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions

    Usage:
        >>> with get_session() as session:
        ...     households = session.query(Household).all()
        ...     # Session auto-committed on success, rolled back on error

    Yields:
        SQLAlchemy Session

    Raises:
        DataStoreUnavailable: If the database cannot be reached
        Exception: Re-raises any other exception after rollback
    """
    SessionFactory = get_session_factory()
    session = SessionFactory()

    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        logger.error(f"Database unavailable: {e}")
        raise DataStoreUnavailable(str(e)) from e
    except Exception as e:
        session.rollback()
        logger.error(f"Session rollback due to error: {e}", exc_info=True)
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage with FastAPI:
        @router.get("/households")
        def list_households(session: Session = Depends(get_db)):
            return session.query(Household).all()

    Note: This is NOT decorated with @contextmanager because
    FastAPI's Depends() handles the generator lifecycle directly.
    HTTPExceptions raised by the route roll the session back without
    being logged as errors.

    Yields:
        SQLAlchemy Session
    """
    SessionFactory = get_session_factory()
    session = SessionFactory()

    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        logger.error(f"Database unavailable: {e}")
        raise DataStoreUnavailable(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db():
    """
    Initialize database

    Creates all tables defined in models.
    Should be called once at application startup.

    Note: For production, use Alembic migrations instead.
    """
    from .models import Base

    engine = get_engine()
    try:
        Base.metadata.create_all(engine)
    except OperationalError as e:
        raise DataStoreUnavailable(str(e)) from e
    logger.info("Database tables created/verified")


# Convenience function for testing
if __name__ == "__main__":
    """Test database connection"""
    from rich.console import Console
    from sqlalchemy import text

    console = Console()

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        console.print("[green]✓ Database connection successful[/green]")
        console.print(f"  Dialect: {engine.dialect.name}")

    except Exception as e:
        console.print(f"[red]✗ Database connection failed:[/red] {e}")
        raise
