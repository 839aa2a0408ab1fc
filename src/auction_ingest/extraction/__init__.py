"""
Extraction Package

Row location strategies and per-field rule tables.
"""
from src.auction_ingest.extraction.extractor import DocumentExtractor, MIN_ADDRESS_LENGTH
from src.auction_ingest.extraction.rules import (
    FIELD_RULES,
    HeaderColumnRule,
    KeyAliasRule,
    KeywordCellRule,
    PositionRule,
    RawRow,
    RegexRule,
)
from src.auction_ingest.extraction.strategies import (
    DEFAULT_ROW_STRATEGIES,
    case_number_elements,
    table_rows,
)

__all__ = [
    "DocumentExtractor",
    "MIN_ADDRESS_LENGTH",
    "FIELD_RULES",
    "HeaderColumnRule",
    "KeyAliasRule",
    "KeywordCellRule",
    "PositionRule",
    "RawRow",
    "RegexRule",
    "DEFAULT_ROW_STRATEGIES",
    "case_number_elements",
    "table_rows",
]
