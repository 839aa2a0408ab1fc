"""
Tests for Database Models

Tests constraints on listings, courts and ingestion runs.
"""
import pytest
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from src.auction_ingest.db.base import Base, utc_now
from src.auction_ingest.db.models import Court, IngestionRun, Property


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


def make_property(**overrides) -> Property:
    values = dict(
        case_number="2024타경12345",
        item_number="1",
        source_site="courtauction",
        address="서울특별시 강남구 역삼동 123",
        property_type="apartment",
        appraisal_value=850000000,
        minimum_sale_price=595000000,
        bid_deposit=59500000,
        auction_date=date(2024, 12, 15),
        current_status="active",
    )
    values.update(overrides)
    return Property(**values)


class TestPropertyModel:
    """Tests for Property model."""

    def test_create_property(self, test_db):
        """Test creating a listing with defaults."""
        listing = make_property(property_type="other")
        test_db.add(listing)
        test_db.commit()

        assert listing.id is not None
        assert listing.failure_count == 0
        assert listing.auction_date_is_estimated is False
        assert listing.created_at is not None
        assert listing.updated_at is not None

    def test_identity_is_unique(self, test_db):
        """Same case, item and source cannot be stored twice."""
        test_db.add(make_property())
        test_db.commit()

        test_db.add(make_property(address="다른 주소"))
        with pytest.raises(IntegrityError):
            test_db.commit()

    def test_same_case_different_source_allowed(self, test_db):
        test_db.add_all([make_property(), make_property(source_site="onbid")])
        test_db.commit()

        assert test_db.query(Property).count() == 2

    def test_same_case_different_item_allowed(self, test_db):
        test_db.add_all([make_property(), make_property(item_number="2")])
        test_db.commit()

        assert test_db.query(Property).count() == 2

    def test_negative_price_rejected(self, test_db):
        test_db.add(make_property(minimum_sale_price=-1))
        with pytest.raises(IntegrityError):
            test_db.commit()

    def test_unknown_status_rejected(self, test_db):
        test_db.add(make_property(current_status="deleted"))
        with pytest.raises(IntegrityError):
            test_db.commit()

    def test_court_relationship(self, test_db):
        court = Court(name="서울중앙지방법원")
        listing = make_property(court=court)
        test_db.add(listing)
        test_db.commit()

        assert listing.court_id == court.id
        assert court.properties == [listing]


class TestCourtModel:
    def test_name_unique(self, test_db):
        test_db.add(Court(name="부산지방법원"))
        test_db.commit()

        test_db.add(Court(name="부산지방법원"))
        with pytest.raises(IntegrityError):
            test_db.commit()


class TestIngestionRunModel:
    def test_defaults(self, test_db):
        run = IngestionRun(source_site="onbid", started_at=utc_now())
        test_db.add(run)
        test_db.commit()

        assert run.status == "running"
        assert run.total_found == 0
        assert run.discarded_items == 0
        assert run.completed_at is None

    def test_unknown_status_rejected(self, test_db):
        test_db.add(IngestionRun(source_site="onbid", status="paused", started_at=utc_now()))
        with pytest.raises(IntegrityError):
            test_db.commit()
