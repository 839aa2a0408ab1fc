"""
Database Session Management

Provides database connection pooling and session management. The engine is
created on first use so importing repositories does not require a live
database driver.
"""
from contextlib import contextmanager
from typing import Callable, ContextManager, Generator, Optional

from sqlalchemy import create_engine, event, exc, pool, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

SessionScope = Callable[[], ContextManager[Session]]

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """
    Return the process-wide engine, creating it with pool settings on first call.
    """
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,  # Verify connections before using
            echo=settings.database_echo,
        )
        event.listen(_engine, "connect", _receive_connect)
        logger.info("database_engine_created", url=_engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False
        )
    return _session_factory


def _receive_connect(dbapi_conn, connection_record):
    logger.debug("database_connection_established")


@event.listens_for(pool.Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """
    Event listener for connection invalidation.

    Logs when a connection is marked as invalid and removed from pool.
    """
    logger.warning(
        "database_connection_invalidated",
        exception=str(exception) if exception else None
    )


@contextmanager
def session_scope(factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """
    Transaction scope around a session from the given factory.

    Commits when the block exits normally; rolls back and re-raises on any
    exception; always closes the session.

    Args:
        factory: Callable returning a new Session (usually a sessionmaker)

    Yields:
        Database session
    """
    session = factory()
    try:
        yield session
        session.commit()
        logger.debug("database_session_committed")
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_error",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Get database session bound to the configured engine.

    Usage:
        with get_db_session() as session:
            result = session.execute(select(Property)).scalars().all()

    Yields:
        Database session
    """
    with session_scope(get_session_factory()) as session:
        yield session


def health_check() -> bool:
    """
    Check database connection health.

    Returns:
        True if database is accessible, False otherwise
    """
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
            logger.info("database_health_check_success")
            return True
    except exc.SQLAlchemyError as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        return False


def close_connections():
    """
    Dispose of the engine. Should be called on application shutdown.
    """
    global _engine, _session_factory
    if _engine is None:
        return
    logger.info("closing_database_connections")
    _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("database_connections_closed")


def create_all_tables(engine: Optional[Engine] = None):
    """
    Create all database tables defined in models.

    Schema provisioning in production is handled outside this package; this
    is for local development and tests.
    """
    from src.auction_ingest.db.base import Base, import_all_models

    logger.info("creating_database_tables")
    import_all_models()
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("database_tables_created")
