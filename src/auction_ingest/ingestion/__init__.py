"""
Ingestion Package

Pipeline orchestration, per-source leases and run tracking.
"""
from src.auction_ingest.ingestion.lease import Lease, LeaseRegistry, default_registry
from src.auction_ingest.ingestion.pipeline import IngestionPipeline, RunSummary, run_ingestion
from src.auction_ingest.ingestion.run_tracker import RunTracker, RunTrackerError

__all__ = [
    "Lease",
    "LeaseRegistry",
    "default_registry",
    "IngestionPipeline",
    "RunSummary",
    "run_ingestion",
    "RunTracker",
    "RunTrackerError",
]
