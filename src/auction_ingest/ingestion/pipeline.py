"""
Ingestion Pipeline

Runs one source end to end: fetch pages, extract candidate rows, normalize,
upsert each listing in its own transaction, and record run statistics.

Usage:
    python -m src.auction_ingest.ingestion.pipeline --source onbid
    python -m src.auction_ingest.ingestion.pipeline --source courtauction --target-date 2024-12-15
    python -m src.auction_ingest.ingestion.pipeline --source manual --write-template
"""
import argparse
import sys
import time
from dataclasses import asdict, dataclass
from datetime import date
from pathlib import Path
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from config.settings import Settings, settings as default_settings
from src.auction_ingest.db.session import close_connections, create_all_tables, get_db_session
from src.auction_ingest.etl.upsert_engine import InvalidCandidateError, PropertyUpsertEngine
from src.auction_ingest.extraction.extractor import DocumentExtractor
from src.auction_ingest.ingestion.lease import LeaseRegistry, default_registry
from src.auction_ingest.ingestion.run_tracker import RunTracker
from src.auction_ingest.models.listing import DocumentKind, FieldBundle, RawDocument, RunStatus
from src.auction_ingest.scrapers.base import END_OF_STREAM, SourceAdapter
from src.auction_ingest.scrapers.manual_text_source import write_template
from src.auction_ingest.scrapers.registry import SOURCE_SITES, build_source
from src.auction_ingest.transformers.candidate_normalizer import CandidateNormalizer
from src.auction_ingest.utils.logger import bind_run_context, clear_run_context, get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class RunSummary:
    """Outcome of one pipeline run."""
    run_id: int
    source_site: str
    status: str
    pages: int = 0
    total_found: int = 0
    new_items: int = 0
    updated_items: int = 0
    error_count: int = 0
    discarded_items: int = 0
    low_confidence_items: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _PageStats:
    pages: int = 0
    bundles: int = 0
    low_confidence: int = 0


class IngestionPipeline:
    """
    Orchestrates source adapter, extractor, normalizer, upsert engine and
    run tracker for a single source per run.
    """

    def __init__(
        self,
        session_scope: Optional[Callable[[], ContextManager[Session]]] = None,
        extractor: Optional[DocumentExtractor] = None,
        normalizer: Optional[CandidateNormalizer] = None,
        upsert_engine: Optional[PropertyUpsertEngine] = None,
        lease_registry: Optional[LeaseRegistry] = None,
        lease_ttl: Optional[float] = None,
        max_pages: Optional[int] = None,
        page_delay: Optional[float] = None,
        snapshot_dir: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.session_scope = session_scope or get_db_session
        self.extractor = extractor or DocumentExtractor()
        self.normalizer = normalizer or CandidateNormalizer()
        self.upsert_engine = upsert_engine or PropertyUpsertEngine(self.session_scope)
        self.lease_registry = lease_registry or default_registry
        self.lease_ttl = lease_ttl or default_settings.lease_ttl_seconds
        self.max_pages = max_pages or default_settings.max_pages
        self.page_delay = default_settings.page_delay_seconds if page_delay is None else page_delay
        self.snapshot_dir = snapshot_dir if snapshot_dir is not None else default_settings.snapshot_dir
        self._sleep = sleep

    def run(self, source: SourceAdapter, target_date: Optional[date] = None) -> Optional[RunSummary]:
        """
        Run ingestion for one source.

        Args:
            source: Unopened source adapter
            target_date: Optional search-window hint passed to the adapter

        Returns:
            RunSummary, or None when another run holds the source's lease

        Raises:
            Exception: Whatever escaped the page loop, after the run is marked failed
        """
        source_site = source.source_site

        with self.lease_registry.hold(source_site, ttl_seconds=self.lease_ttl) as lease:
            if lease is None:
                logger.warning("run_skipped_source_busy", source_site=source_site)
                return None

            tracker = RunTracker(self.session_scope)
            run_id = tracker.open(source_site)
            bind_run_context(run_id, source_site)
            stats = _PageStats()

            if target_date is not None:
                source.target_date = target_date

            try:
                with source:
                    self._process_pages(source, tracker, stats, run_id)
                tracker.set_total_found(stats.bundles)
                tracker.complete()
            except Exception as e:
                logger.error(
                    "run_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    pages=stats.pages
                )
                if tracker.is_open:
                    try:
                        if not tracker.has_total_found:
                            tracker.set_total_found(stats.bundles)
                        tracker.fail(e)
                    except Exception as close_error:
                        logger.error(
                            "run_close_failed",
                            error=str(close_error),
                            error_type=type(close_error).__name__
                        )
                raise
            finally:
                clear_run_context()

        summary = RunSummary(
            run_id=run_id,
            source_site=source_site,
            status=RunStatus.COMPLETED.value,
            pages=stats.pages,
            total_found=tracker.total_found,
            new_items=tracker.new_items,
            updated_items=tracker.updated_items,
            error_count=tracker.error_count,
            discarded_items=tracker.discarded_items,
            low_confidence_items=stats.low_confidence,
        )
        logger.info("run_summary", **summary.to_dict())
        return summary

    def _process_pages(self, source: SourceAdapter, tracker: RunTracker, stats: _PageStats, run_id: int) -> None:
        for cursor in range(self.max_pages):
            if cursor > 0 and self.page_delay:
                self._sleep(self.page_delay)

            document = source.fetch(cursor)
            if document is END_OF_STREAM:
                logger.info("source_exhausted", cursor=cursor)
                return

            stats.pages += 1
            bundles = self.extractor.extract(document)
            stats.bundles += len(bundles)
            if not bundles:
                self._save_snapshot(document, run_id)

            for bundle in bundles:
                self._process_bundle(bundle, document, tracker, stats)

        logger.info("max_pages_reached", max_pages=self.max_pages)

    def _process_bundle(
        self,
        bundle: FieldBundle,
        document: RawDocument,
        tracker: RunTracker,
        stats: _PageStats
    ) -> None:
        try:
            listing = self.normalizer.normalize(
                bundle,
                source_site=document.source_site,
                source_url=document.origin_url
            )
            outcome = self.upsert_engine.upsert(listing)
        except InvalidCandidateError as e:
            tracker.record_discarded()
            logger.debug("candidate_discarded", row_index=bundle.row_index, reason=str(e))
            return
        except Exception as e:
            tracker.record_error()
            logger.warning(
                "candidate_failed",
                row_index=bundle.row_index,
                case_number=bundle.value("case_number"),
                error=str(e),
                error_type=type(e).__name__
            )
            return

        tracker.record(outcome)
        if listing.low_confidence:
            stats.low_confidence += 1

    def _save_snapshot(self, document: RawDocument, run_id: int) -> Optional[Path]:
        """Write a zero-row HTML page to the snapshot directory for diagnosis."""
        if not self.snapshot_dir or document.kind != DocumentKind.HTML or not document.content:
            return None

        path = Path(self.snapshot_dir) / (
            f"{document.source_site}_run{run_id}_page{document.page_index}_"
            f"{document.fetched_at:%Y%m%dT%H%M%S}.html"
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(document.content, encoding="utf-8")
        except OSError as e:
            logger.warning("snapshot_write_failed", path=str(path), error=str(e))
            return None

        logger.info("snapshot_saved", path=str(path), page_index=document.page_index)
        return path


def run_ingestion(
    source_site: str,
    target_date: Optional[date] = None,
    config: Optional[Settings] = None
) -> Optional[RunSummary]:
    """
    Build the adapter for a source and run the pipeline once.

    Args:
        source_site: One of SOURCE_SITES
        target_date: Optional search-window hint
        config: Settings instance (defaults to the process settings)

    Returns:
        RunSummary, or None when the source is already running
    """
    config = config or default_settings
    source = build_source(source_site, config)
    pipeline = IngestionPipeline(
        max_pages=config.max_pages,
        page_delay=config.page_delay_seconds,
        snapshot_dir=config.snapshot_dir,
        lease_ttl=config.lease_ttl_seconds,
    )
    return pipeline.run(source, target_date=target_date)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Auction listing ingestion pipeline")
    parser.add_argument(
        "--source",
        required=True,
        choices=SOURCE_SITES,
        help="Source to ingest",
    )
    parser.add_argument(
        "--target-date",
        type=date.fromisoformat,
        default=None,
        help="Search window hint (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--write-template",
        action="store_true",
        help="Write a blank manual-entry template instead of ingesting (manual source only)",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before running (local development)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    if args.write_template:
        if args.source != "manual":
            logger.error("template_requires_manual_source", source_site=args.source)
            return 2
        write_template(default_settings.manual_data_path)
        return 0

    if args.create_tables:
        create_all_tables()

    try:
        summary = run_ingestion(args.source, target_date=args.target_date)
    except Exception as e:
        logger.error("ingestion_aborted", source_site=args.source, error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        close_connections()

    if summary is None:
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
