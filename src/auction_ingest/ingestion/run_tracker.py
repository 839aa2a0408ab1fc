"""
Run Tracker

Owns the IngestionRun row for one pipeline run: opens it in the running
state, accumulates counters in memory, and closes it exactly once.
"""
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from src.auction_ingest.db.base import utc_now
from src.auction_ingest.db.repository import IngestionRunRepository
from src.auction_ingest.db.session import get_db_session
from src.auction_ingest.etl.upsert_engine import UpsertOutcome
from src.auction_ingest.models.listing import RunStatus
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)


class RunTrackerError(RuntimeError):
    """Run tracker used out of order (not opened, closed twice, ...)."""


class RunTracker:
    """
    Counter accumulator backed by an ingestion_runs row.

    The running row is committed on open() so observers see in-flight runs.
    """

    def __init__(self, session_scope: Optional[Callable[[], ContextManager[Session]]] = None):
        self.session_scope = session_scope or get_db_session
        self.repository = IngestionRunRepository()

        self.run_id: Optional[int] = None
        self.source_site: Optional[str] = None
        self.status: Optional[RunStatus] = None

        self.total_found = 0
        self.new_items = 0
        self.updated_items = 0
        self.error_count = 0
        self.discarded_items = 0
        self._total_found_set = False

    def open(self, source_site: str) -> int:
        """
        Create the running row.

        Returns:
            Run ID
        """
        if self.run_id is not None:
            raise RunTrackerError(f"Run {self.run_id} already open")

        with self.session_scope() as session:
            run = self.repository.create_run(session, source_site=source_site, started_at=utc_now())
            self.run_id = run.id

        self.source_site = source_site
        self.status = RunStatus.RUNNING
        logger.info("run_opened", run_id=self.run_id, source_site=source_site)
        return self.run_id

    def record(self, outcome: UpsertOutcome) -> None:
        if outcome == UpsertOutcome.CREATED:
            self.new_items += 1
        else:
            self.updated_items += 1

    def record_error(self) -> None:
        self.error_count += 1

    def record_discarded(self) -> None:
        self.discarded_items += 1

    def set_total_found(self, count: int) -> None:
        """Set total_found once, from the extractor's bundle count for the whole run."""
        if self._total_found_set:
            raise RunTrackerError("total_found already set")
        self.total_found = count
        self._total_found_set = True

    def complete(self) -> None:
        self._close(RunStatus.COMPLETED)

    def fail(self, error: BaseException) -> None:
        self._close(RunStatus.FAILED, error_message=f"{type(error).__name__}: {error}")

    @property
    def is_open(self) -> bool:
        return self.status == RunStatus.RUNNING

    @property
    def has_total_found(self) -> bool:
        return self._total_found_set

    def _close(self, status: RunStatus, error_message: Optional[str] = None) -> None:
        if self.run_id is None:
            raise RunTrackerError("Run was never opened")
        if not self.is_open:
            raise RunTrackerError(f"Run {self.run_id} already closed with status {self.status.value}")

        with self.session_scope() as session:
            self.repository.close_run(
                session,
                self.run_id,
                status=status,
                total_found=self.total_found,
                new_items=self.new_items,
                updated_items=self.updated_items,
                error_count=self.error_count,
                discarded_items=self.discarded_items,
                error_message=error_message,
                completed_at=utc_now(),
            )

        self.status = status
        logger.info(
            "run_closed",
            run_id=self.run_id,
            status=status.value,
            total_found=self.total_found,
            new_items=self.new_items,
            updated_items=self.updated_items,
            error_count=self.error_count,
            discarded_items=self.discarded_items
        )
