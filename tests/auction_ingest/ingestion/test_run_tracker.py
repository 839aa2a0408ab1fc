"""
Tests for RunTracker
"""
import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.auction_ingest.db.base import Base
from src.auction_ingest.db.models import IngestionRun
from src.auction_ingest.db.session import session_scope
from src.auction_ingest.etl.upsert_engine import UpsertOutcome
from src.auction_ingest.ingestion.run_tracker import RunTracker, RunTrackerError


@pytest.fixture(scope="function")
def test_db():
    """Session factory over an in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)

    yield sessionmaker(bind=engine, expire_on_commit=False)

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def tracker(test_db):
    return RunTracker(session_scope=lambda: session_scope(test_db))


def load_run(factory, run_id) -> IngestionRun:
    with session_scope(factory) as session:
        return session.scalar(select(IngestionRun).where(IngestionRun.id == run_id))


class TestRunTracker:
    """Tests for run lifecycle and counters"""

    def test_open_commits_running_row(self, test_db, tracker):
        run_id = tracker.open("courtauction")

        run = load_run(test_db, run_id)
        assert run.status == "running"
        assert run.source_site == "courtauction"
        assert tracker.is_open

    def test_complete_persists_counters(self, test_db, tracker):
        run_id = tracker.open("onbid")
        tracker.record(UpsertOutcome.CREATED)
        tracker.record(UpsertOutcome.CREATED)
        tracker.record(UpsertOutcome.UPDATED)
        tracker.record_error()
        tracker.record_discarded()
        tracker.set_total_found(5)

        tracker.complete()

        run = load_run(test_db, run_id)
        assert run.status == "completed"
        assert (run.total_found, run.new_items, run.updated_items, run.error_count, run.discarded_items) == (
            5, 2, 1, 1, 1
        )
        assert run.completed_at is not None
        assert run.execution_time is not None
        assert not tracker.is_open

    def test_fail_records_message(self, test_db, tracker):
        run_id = tracker.open("manual")

        tracker.fail(ValueError("page 2 timed out"))

        run = load_run(test_db, run_id)
        assert run.status == "failed"
        assert run.error_message == "ValueError: page 2 timed out"

    def test_closes_exactly_once(self, tracker):
        tracker.open("manual")
        tracker.complete()

        with pytest.raises(RunTrackerError):
            tracker.fail(RuntimeError("late"))
        with pytest.raises(RunTrackerError):
            tracker.complete()

    def test_close_before_open(self, tracker):
        with pytest.raises(RunTrackerError):
            tracker.complete()

    def test_open_twice(self, tracker):
        tracker.open("manual")
        with pytest.raises(RunTrackerError):
            tracker.open("manual")

    def test_total_found_set_once(self, tracker):
        tracker.open("manual")
        assert not tracker.has_total_found

        tracker.set_total_found(3)

        assert tracker.has_total_found
        with pytest.raises(RunTrackerError):
            tracker.set_total_found(4)
