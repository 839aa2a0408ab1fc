"""
ETL Package

Loading normalized listings into the relational store.
"""
from src.auction_ingest.etl.upsert_engine import (
    InvalidCandidateError,
    MUTABLE_FIELDS,
    PropertyUpsertEngine,
    UpsertOutcome,
)

__all__ = [
    "InvalidCandidateError",
    "MUTABLE_FIELDS",
    "PropertyUpsertEngine",
    "UpsertOutcome",
]
