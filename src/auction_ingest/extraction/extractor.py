"""
Document Extractor

Turns a RawDocument into FieldBundles: locate rows with the first row
strategy that finds any, apply the per-field rule table to each row, and drop
rows that carry neither a case number nor a plausible address.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from src.auction_ingest.extraction.rules import FIELD_RULES, RawRow, Rule, apply_rules
from src.auction_ingest.extraction.strategies import DEFAULT_ROW_STRATEGIES, RowStrategy
from src.auction_ingest.models.listing import DocumentKind, FieldBundle, RawDocument
from src.auction_ingest.transformers.field_normalizer import looks_like_case_number
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

MIN_ADDRESS_LENGTH = 10


class DocumentExtractor:
    """
    Multi-strategy field extractor.

    Both the row strategies and the field rule table are injectable so each
    can be exercised on its own.
    """

    def __init__(
        self,
        row_strategies: Optional[Sequence[Tuple[str, RowStrategy]]] = None,
        field_rules: Optional[Dict[str, List[Rule]]] = None
    ):
        self.row_strategies = list(row_strategies or DEFAULT_ROW_STRATEGIES)
        self.field_rules = field_rules or FIELD_RULES

    def extract(self, document: RawDocument) -> List[FieldBundle]:
        """
        Extract candidate bundles from a document.

        Args:
            document: Raw document from a source adapter

        Returns:
            Field bundles in document order (empty when nothing matched)
        """
        row_strategy, rows = self.locate_rows(document)

        bundles = []
        discarded = 0
        for index, row in enumerate(rows):
            bundle = self.extract_row(row, row_strategy, index)
            if self.is_noise(bundle):
                discarded += 1
                continue
            bundles.append(bundle)

        logger.info(
            "document_extracted",
            source_site=document.source_site,
            page_index=document.page_index,
            row_strategy=row_strategy,
            rows_located=len(rows),
            bundles=len(bundles),
            noise_rows=discarded
        )
        return bundles

    def locate_rows(self, document: RawDocument) -> Tuple[Optional[str], List[RawRow]]:
        if document.kind == DocumentKind.RECORDS:
            records = document.content or []
            return "records", [RawRow.from_record(record) for record in records]

        if not document.content:
            return None, []

        soup = BeautifulSoup(document.content, "html.parser")
        for name, strategy in self.row_strategies:
            rows = strategy(soup)
            if rows:
                return name, rows
        return None, []

    def extract_row(self, row: RawRow, row_strategy: Optional[str], index: int = 0) -> FieldBundle:
        fields = {}
        for field_name, rules in self.field_rules.items():
            candidate = apply_rules(row, rules)
            if candidate is not None:
                fields[field_name] = candidate
        return FieldBundle(fields=fields, row_strategy=row_strategy or "none", row_index=index)

    @staticmethod
    def is_noise(bundle: FieldBundle) -> bool:
        """A row is noise without a case number token and a usable address."""
        if looks_like_case_number(bundle.value("case_number")):
            return False
        address = bundle.value("address") or ""
        return len(address) <= MIN_ADDRESS_LENGTH
