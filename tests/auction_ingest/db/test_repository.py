"""
Tests for Repository Pattern

Tests court resolution, listing queries and run bookkeeping.
"""
import pytest
from datetime import date, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.auction_ingest.db.base import Base, as_utc, utc_now
from src.auction_ingest.db.models import Property
from src.auction_ingest.db.repository import (
    CourtRepository,
    IngestionRunRepository,
    PropertyRepository,
)
from src.auction_ingest.models.listing import RunStatus


@pytest.fixture(scope="function")
def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


def add_property(session, case_number, **overrides) -> Property:
    values = dict(
        case_number=case_number,
        item_number="1",
        source_site="courtauction",
        address="서울특별시 강남구 역삼동 123",
        property_type="apartment",
        current_status="active",
    )
    values.update(overrides)
    listing = Property(**values)
    session.add(listing)
    session.flush()
    return listing


class TestCourtRepository:
    """Tests for CourtRepository."""

    def test_get_or_create_inserts_once(self, test_db):
        repo = CourtRepository()

        first = repo.get_or_create(test_db, "서울중앙지방법원")
        second = repo.get_or_create(test_db, "서울중앙지방법원")

        assert first.id == second.id
        assert repo.count(test_db) == 1
        assert [court.name for court in repo.get_all(test_db)] == ["서울중앙지방법원"]

    def test_substring_match(self, test_db):
        repo = CourtRepository()
        court = repo.create(test_db, name="수원지방법원 성남지원")

        assert repo.find_by_name(test_db, "성남지원").id == court.id

    def test_exact_match_preferred(self, test_db):
        repo = CourtRepository()
        repo.create(test_db, name="수원지방법원 성남지원")
        exact = repo.create(test_db, name="수원지방법원")

        assert repo.find_by_name(test_db, "수원지방법원").id == exact.id

    def test_wildcards_are_literal(self, test_db):
        repo = CourtRepository()
        repo.create(test_db, name="부산지방법원")

        assert repo.find_by_name(test_db, "%") is None
        assert repo.find_by_name(test_db, "  ") is None


class TestPropertyRepository:
    """Tests for PropertyRepository."""

    def test_get_by_identity(self, test_db):
        repo = PropertyRepository()
        listing = add_property(test_db, "2024타경1")
        add_property(test_db, "2024타경1", source_site="onbid")

        found = repo.get_by_identity(test_db, "2024타경1", "1", "courtauction")

        assert found.id == listing.id
        assert repo.get_by_identity(test_db, "2024타경1", "2", "courtauction") is None

    def test_get_by_status(self, test_db):
        repo = PropertyRepository()
        add_property(test_db, "2024타경1", current_status="sold")
        add_property(test_db, "2024타경2")

        sold = repo.get_by_status(test_db, "sold")

        assert [p.case_number for p in sold] == ["2024타경1"]

    def test_get_by_auction_date_range(self, test_db):
        repo = PropertyRepository()
        add_property(test_db, "2024타경1", auction_date=date(2024, 12, 1))
        add_property(test_db, "2024타경2", auction_date=date(2024, 12, 15))
        add_property(test_db, "2024타경3", auction_date=date(2024, 12, 20), current_status="failed")
        add_property(test_db, "2024타경4", auction_date=date(2025, 1, 5))

        in_range = repo.get_by_auction_date_range(test_db, date(2024, 12, 1), date(2024, 12, 31))
        active_only = repo.get_by_auction_date_range(
            test_db, date(2024, 12, 1), date(2024, 12, 31), status="active"
        )

        assert [p.case_number for p in in_range] == ["2024타경1", "2024타경2", "2024타경3"]
        assert [p.case_number for p in active_only] == ["2024타경1", "2024타경2"]

    def test_count_by_source(self, test_db):
        repo = PropertyRepository()
        add_property(test_db, "2024타경1")
        add_property(test_db, "2024타경2")
        add_property(test_db, "ONBID-1", source_site="onbid")

        assert repo.count_by_source(test_db) == {"courtauction": 2, "onbid": 1}


class TestIngestionRunRepository:
    """Tests for IngestionRunRepository."""

    def test_create_and_close(self, test_db):
        repo = IngestionRunRepository()
        started = utc_now() - timedelta(seconds=90)
        run = repo.create_run(test_db, "courtauction", started_at=started)

        closed = repo.close_run(
            test_db,
            run.id,
            RunStatus.COMPLETED,
            total_found=5,
            new_items=3,
            updated_items=1,
            discarded_items=1,
        )

        assert closed.status == "completed"
        assert closed.total_found == 5
        assert closed.new_items + closed.updated_items + closed.error_count + closed.discarded_items == 5
        assert closed.execution_time >= 90
        assert as_utc(closed.completed_at) >= as_utc(closed.started_at)

    def test_close_twice_rejected(self, test_db):
        repo = IngestionRunRepository()
        run = repo.create_run(test_db, "onbid")
        repo.close_run(test_db, run.id, RunStatus.FAILED, error_message="boom")

        with pytest.raises(ValueError):
            repo.close_run(test_db, run.id, RunStatus.COMPLETED)

    def test_close_with_running_rejected(self, test_db):
        repo = IngestionRunRepository()
        run = repo.create_run(test_db, "onbid")

        with pytest.raises(ValueError):
            repo.close_run(test_db, run.id, RunStatus.RUNNING)

    def test_close_missing_run(self, test_db):
        with pytest.raises(ValueError):
            IngestionRunRepository().close_run(test_db, 999, RunStatus.COMPLETED)

    def test_get_runs_newest_first(self, test_db):
        repo = IngestionRunRepository()
        now = utc_now()
        older = repo.create_run(test_db, "onbid", started_at=now - timedelta(hours=2))
        newer = repo.create_run(test_db, "onbid", started_at=now - timedelta(hours=1))
        repo.create_run(test_db, "manual", started_at=now)

        runs = repo.get_runs(test_db, source_site="onbid")

        assert [r.id for r in runs] == [newer.id, older.id]
        assert len(repo.get_runs(test_db, status="running", limit=2)) == 2
