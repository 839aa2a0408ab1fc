"""
Repository Pattern for Data Access

Provides CRUD operations and domain-specific queries for listings, courts
and ingestion runs.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import and_, desc, func, select
from sqlalchemy.orm import Session

from src.auction_ingest.db.base import as_utc, utc_now
from src.auction_ingest.db.models import Court, IngestionRun, Property
from src.auction_ingest.models.listing import RunStatus
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def get_all(self, session: Session, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        query = select(self.model).offset(offset)
        if limit:
            query = query.limit(limit)
        return list(session.execute(query).scalars().all())

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record and flush to obtain its primary key.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.debug("repository_created", model=self.model.__name__, id=getattr(instance, 'id', None))
        return instance

    def count(self, session: Session) -> int:
        return session.scalar(select(func.count()).select_from(self.model))


class CourtRepository(BaseRepository):
    """Repository for the court lookup table."""

    def __init__(self):
        super().__init__(Court)

    def find_by_name(self, session: Session, name: str) -> Optional[Court]:
        """
        Case-insensitive substring lookup against existing court names.

        An exact match wins over a substring match; among substring matches
        the shortest name is preferred.

        Args:
            session: Database session
            name: Normalized court name

        Returns:
            Court instance or None
        """
        needle = name.strip().lower()
        if not needle:
            return None

        exact = session.execute(
            select(Court).where(func.lower(Court.name) == needle)
        ).scalars().first()
        if exact:
            return exact

        query = select(Court).where(
            func.lower(Court.name).contains(needle, autoescape=True)
        ).order_by(func.length(Court.name), Court.id)
        return session.execute(query).scalars().first()

    def get_or_create(self, session: Session, name: str) -> Court:
        """
        Resolve a court by name, inserting it inside the caller's transaction
        when no existing court matches.
        """
        court = self.find_by_name(session, name)
        if court:
            return court

        court = self.create(session, name=name.strip())
        logger.info("court_created", court_id=court.id, name=court.name)
        return court


class PropertyRepository(BaseRepository):
    """Repository for canonical listings with identity and range queries."""

    def __init__(self):
        super().__init__(Property)

    def get_by_identity(
        self,
        session: Session,
        case_number: str,
        item_number: str,
        source_site: str
    ) -> Optional[Property]:
        """
        Get listing by its identity key.

        Args:
            session: Database session
            case_number: Court case number
            item_number: Lot number
            source_site: Origin identifier

        Returns:
            Property instance or None
        """
        query = select(Property).where(
            and_(
                Property.case_number == case_number,
                Property.item_number == item_number,
                Property.source_site == source_site,
            )
        )
        return session.execute(query).scalar_one_or_none()

    def get_by_status(
        self,
        session: Session,
        status: str,
        limit: Optional[int] = None
    ) -> List[Property]:
        query = select(Property).where(
            Property.current_status == status
        ).order_by(Property.auction_date, Property.id)
        if limit:
            query = query.limit(limit)
        return list(session.execute(query).scalars().all())

    def get_by_auction_date_range(
        self,
        session: Session,
        start_date: date,
        end_date: date,
        status: Optional[str] = None
    ) -> List[Property]:
        """
        Get listings whose auction falls within a date range.

        Args:
            session: Database session
            start_date: Start date (inclusive)
            end_date: End date (inclusive)
            status: Optional current_status filter

        Returns:
            List of listings ordered by auction date
        """
        conditions = [
            Property.auction_date >= start_date,
            Property.auction_date <= end_date,
        ]
        if status:
            conditions.append(Property.current_status == status)

        query = select(Property).where(and_(*conditions)).order_by(Property.auction_date)
        return list(session.execute(query).scalars().all())

    def count_by_source(self, session: Session) -> Dict[str, int]:
        query = select(
            Property.source_site,
            func.count(Property.id)
        ).group_by(Property.source_site)
        return {source: count for source, count in session.execute(query).all()}


class IngestionRunRepository(BaseRepository):
    """Repository for IngestionRun model (run tracking)."""

    def __init__(self):
        super().__init__(IngestionRun)

    def create_run(
        self,
        session: Session,
        source_site: str,
        started_at: Optional[datetime] = None
    ) -> IngestionRun:
        """
        Create new ingestion run in the running state.

        Args:
            session: Database session
            source_site: Source identifier
            started_at: Start timestamp (defaults to now)

        Returns:
            IngestionRun instance
        """
        if started_at is None:
            started_at = utc_now()

        run = IngestionRun(
            source_site=source_site,
            status=RunStatus.RUNNING.value,
            started_at=started_at
        )

        session.add(run)
        session.flush()

        logger.info("ingestion_run_created", run_id=run.id, source_site=source_site)
        return run

    def close_run(
        self,
        session: Session,
        run_id: int,
        status: RunStatus,
        total_found: int = 0,
        new_items: int = 0,
        updated_items: int = 0,
        error_count: int = 0,
        discarded_items: int = 0,
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None
    ) -> IngestionRun:
        """
        Move a running run to a terminal status and persist its counters.

        Args:
            session: Database session
            run_id: Run ID
            status: Terminal status (completed or failed)
            total_found: Candidate bundles extracted during the run
            new_items: Listings inserted
            updated_items: Listings updated
            error_count: Store write failures
            discarded_items: Candidates rejected before the store
            error_message: Error message for failed runs
            completed_at: Completion timestamp (defaults to now)

        Returns:
            Updated IngestionRun instance

        Raises:
            ValueError: If the run does not exist or is already closed
        """
        run = self.get_by_id(session, run_id)
        if not run:
            raise ValueError(f"IngestionRun {run_id} not found")
        if run.status != RunStatus.RUNNING.value:
            raise ValueError(f"IngestionRun {run_id} already closed with status {run.status}")
        if status == RunStatus.RUNNING:
            raise ValueError("A run can only be closed with a terminal status")

        completed_at = as_utc(completed_at) or utc_now()
        started_at = as_utc(run.started_at)

        run.status = status.value
        run.total_found = total_found
        run.new_items = new_items
        run.updated_items = updated_items
        run.error_count = error_count
        run.discarded_items = discarded_items
        run.error_message = error_message
        run.completed_at = completed_at
        run.execution_time = max(0, int((completed_at - started_at).total_seconds()))

        session.flush()

        logger.info(
            "ingestion_run_closed",
            run_id=run_id,
            status=status.value,
            total_found=total_found,
            new_items=new_items,
            updated_items=updated_items,
            error_count=error_count,
            discarded_items=discarded_items
        )

        return run

    def get_runs(
        self,
        session: Session,
        source_site: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20
    ) -> List[IngestionRun]:
        """
        Get recent runs, newest first, optionally filtered.

        Args:
            session: Database session
            source_site: Filter by source (optional)
            status: Filter by status (optional)
            limit: Maximum number of runs

        Returns:
            List of ingestion runs
        """
        query = select(IngestionRun).order_by(desc(IngestionRun.started_at), desc(IngestionRun.id))

        if source_site:
            query = query.where(IngestionRun.source_site == source_site)
        if status:
            query = query.where(IngestionRun.status == status)

        return list(session.execute(query.limit(limit)).scalars().all())
