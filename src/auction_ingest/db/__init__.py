"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.auction_ingest.db.base import Base
from src.auction_ingest.db.session import (
    get_engine,
    get_session_factory,
    session_scope,
    get_db_session,
    health_check,
    close_connections,
    create_all_tables,
)
from src.auction_ingest.db.models import (
    Court,
    Property,
    IngestionRun,
)
from src.auction_ingest.db.repository import (
    BaseRepository,
    CourtRepository,
    PropertyRepository,
    IngestionRunRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "get_engine",
    "get_session_factory",
    "session_scope",
    "get_db_session",
    "health_check",
    "close_connections",
    "create_all_tables",
    # Models
    "Court",
    "Property",
    "IngestionRun",
    # Repositories
    "BaseRepository",
    "CourtRepository",
    "PropertyRepository",
    "IngestionRunRepository",
]
