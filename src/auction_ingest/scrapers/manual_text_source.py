"""
Manual Text Source

Reads listings that an operator copied by hand from the court auction site
into a `key: value` template file. Blocks are separated by `---` lines and
`//` lines are comments.
"""
from pathlib import Path
from typing import Dict, List, Optional, Union

from config.settings import settings
from src.auction_ingest.models.listing import DocumentKind, RawDocument
from src.auction_ingest.scrapers.base import END_OF_STREAM, FetchError, FetchResult, SourceAdapter
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

MANUAL_SOURCE_SITE = "manual"
BLOCK_SEPARATOR = "---"
COMMENT_PREFIX = "//"
PLACEHOLDER_SENTINEL = "미입력"

LABELS: Dict[str, str] = {
    "사건번호": "case_number",
    "물건번호": "item_number",
    "법원": "court_name",
    "물건종류": "property_type",
    "용도": "property_type",
    "소재지": "address",
    "주소": "address",
    "건물명": "building_name",
    "대지면적": "land_area",
    "건물면적": "building_area",
    "감정가액": "appraisal_value",
    "감정가": "appraisal_value",
    "최저매각가격": "minimum_sale_price",
    "최저가": "minimum_sale_price",
    "입찰보증금": "bid_deposit",
    "입찰일자": "auction_date",
    "매각기일": "auction_date",
    "입찰시간": "auction_time",
    "유찰횟수": "failure_count",
    "진행상태": "status",
    "임차인현황": "tenant_status",
    "비고": "notes",
}

TEMPLATE_FIELDS = ["사건번호", "법원", "물건종류", "소재지", "감정가액", "최저매각가격", "입찰일자"]

TEMPLATE_HEADER = "// 실제 법원경매정보에서 복사한 데이터를 아래 형식으로 입력하세요"
TEMPLATE_FOOTER = "// 위 형식을 반복해서 여러 물건 입력 가능"


def render_template(blocks: int = 2) -> str:
    block = "\n".join(f"{label}: " for label in TEMPLATE_FIELDS) + f"\n{BLOCK_SEPARATOR}\n"
    return TEMPLATE_HEADER + "\n\n" + "\n".join([block] * blocks) + "\n" + TEMPLATE_FOOTER + "\n"


def write_template(path: Optional[Union[str, Path]] = None, blocks: int = 2) -> Path:
    """
    Write a blank template for operators to fill in.

    Args:
        path: Target file (defaults to settings.manual_data_path)
        blocks: Number of empty listing blocks

    Returns:
        Path written
    """
    target = Path(path or settings.manual_data_path)
    target.write_text(render_template(blocks), encoding="utf-8")
    logger.info("manual_template_written", path=str(target), blocks=blocks)
    return target


def _split_blocks(text: str) -> List[List[str]]:
    blocks: List[List[str]] = [[]]
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == BLOCK_SEPARATOR:
            blocks.append([])
        elif stripped and not stripped.startswith(COMMENT_PREFIX):
            blocks[-1].append(stripped)
    return [block for block in blocks if block]


def _is_placeholder(record: Dict[str, str]) -> bool:
    case_number = record.get("case_number", "").strip()
    return not case_number or PLACEHOLDER_SENTINEL in case_number


def parse_manual_text(text: str) -> List[Dict[str, str]]:
    """
    Parse filled-in template text into flat records.

    Labels may be Korean (사건번호) or canonical field names (case_number).
    Only the first colon splits key from value, so times survive.

    Returns:
        One mapping per filled-in block
    """
    records = []
    skipped = 0
    canonical = set(LABELS.values())
    for lines in _split_blocks(text):
        record: Dict[str, str] = {}
        for line in lines:
            if ":" not in line:
                continue
            key, value = (part.strip() for part in line.split(":", 1))
            field_name = LABELS.get(key) or (key if key in canonical else None)
            if field_name and value and field_name not in record:
                record[field_name] = value

        if _is_placeholder(record):
            skipped += 1
            continue
        records.append(record)

    logger.debug("manual_text_parsed", records=len(records), placeholders_skipped=skipped)
    return records


class ManualTextSource(SourceAdapter):
    """
    Source adapter over a hand-filled template.

    Yields one RECORDS document, then END_OF_STREAM.
    """

    source_site = MANUAL_SOURCE_SITE

    def __init__(self, path: Optional[Union[str, Path]] = None, text: Optional[str] = None):
        self.path = Path(path or settings.manual_data_path)
        self.text = text

    def fetch(self, cursor: int) -> FetchResult:
        if cursor > 0:
            return END_OF_STREAM

        text = self.text
        if text is None:
            try:
                text = self.path.read_text(encoding="utf-8")
            except OSError as e:
                raise FetchError(
                    f"Cannot read manual data file {self.path}: {e}",
                    source_site=self.source_site,
                    retryable=False
                ) from e

        records = parse_manual_text(text)
        logger.info("manual_records_loaded", path=str(self.path), records=len(records))

        return RawDocument(
            source_site=self.source_site,
            content=records,
            kind=DocumentKind.RECORDS,
            page_index=cursor,
            origin_url=settings.courtauction_base_url,
        )
