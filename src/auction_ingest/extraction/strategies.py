"""
Row Location Strategies

Pure functions that find candidate listing rows in parsed HTML. Strategies
are tried in order by the extractor; the first one that finds rows wins.
"""
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from src.auction_ingest.extraction.rules import HEADER_KEYWORDS, RawRow
from src.auction_ingest.transformers.field_normalizer import CASE_NUMBER_PATTERN

RowStrategy = Callable[[BeautifulSoup], List[RawRow]]

# Result-table selectors, most specific first.
TABLE_SELECTORS = (
    "table.Ltbl",
    "table.etc",
    ".table_list table",
    ".list_table table",
    "table",
)

MIN_TABLE_DATA_ROWS = 2

LEAF_TAGS = ["tr", "li", "div"]


def _cell_texts(row: Tag) -> List[str]:
    return [cell.get_text(" ", strip=True) for cell in row.find_all(["td", "th"], recursive=False)]


def _is_header_row(row: Tag) -> bool:
    cells = row.find_all(["td", "th"], recursive=False)
    if cells and all(cell.name == "th" for cell in cells):
        return True
    texts = [cell.get_text("", strip=True) for cell in cells]
    hits = sum(1 for text in texts if any(keyword in text for keyword in HEADER_KEYWORDS))
    return hits >= 2


def _split_table(table: Tag) -> Tuple[Optional[List[str]], List[List[str]]]:
    """Return (headers, data rows) for a table, ignoring nested tables."""
    headers = None
    data_rows = []
    for row in table.find_all("tr"):
        if row.find_parent("table") is not table:
            continue
        if headers is None and not data_rows and _is_header_row(row):
            headers = _cell_texts(row)
            continue
        cells = _cell_texts(row)
        if any(cells):
            data_rows.append(cells)
    return headers, data_rows


def table_rows(soup: BeautifulSoup) -> List[RawRow]:
    """
    Rows of the first results table with at least two data rows.

    Selectors are tried in order so known result-table classes win over
    layout tables.
    """
    seen = set()
    for selector in TABLE_SELECTORS:
        for table in soup.select(selector):
            if id(table) in seen:
                continue
            seen.add(id(table))
            headers, data_rows = _split_table(table)
            if len(data_rows) >= MIN_TABLE_DATA_ROWS:
                return [
                    RawRow(cells=cells, text=" ".join(cells), headers=headers)
                    for cells in data_rows
                ]
    return []


def case_number_elements(soup: BeautifulSoup) -> List[RawRow]:
    """
    Innermost tr/li/div elements whose text carries a case number.

    Table rows keep their cells; other elements become a single cell.
    """
    rows = []
    for element in soup.find_all(LEAF_TAGS):
        text = element.get_text(" ", strip=True)
        if not CASE_NUMBER_PATTERN.search(text):
            continue
        if any(
            CASE_NUMBER_PATTERN.search(child.get_text(" ", strip=True))
            for child in element.find_all(LEAF_TAGS)
        ):
            continue
        cells = _cell_texts(element) if element.name == "tr" else []
        rows.append(RawRow(cells=cells or [text], text=text))
    return rows


DEFAULT_ROW_STRATEGIES: List[Tuple[str, RowStrategy]] = [
    ("table", table_rows),
    ("case_number_element", case_number_elements),
]
