"""
Field Extraction Rules

Each listing field has an ordered list of rules. A rule looks at one RawRow
and either returns a FieldCandidate or None; the first non-empty candidate
wins. The tables at the bottom of this module are the configuration.
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from src.auction_ingest.models.listing import FieldCandidate, PropertyType
from src.auction_ingest.transformers.field_normalizer import (
    CASE_NUMBER_PATTERN,
    classify_property_type,
    looks_like_case_number,
    parse_currency,
)


@dataclass
class RawRow:
    """
    One listing row as located in a document.

    Attributes:
        cells: Cell texts in column order
        text: Concatenated row text
        headers: Column headers when the table had a header row
        record: Flat field mapping for record-based documents
    """
    cells: List[str]
    text: str
    headers: Optional[List[str]] = None
    record: Optional[Dict[str, str]] = None

    @classmethod
    def from_record(cls, record: Dict[str, object]) -> "RawRow":
        values = {
            str(key): str(value).strip()
            for key, value in record.items()
            if value is not None and str(value).strip()
        }
        return cls(cells=list(values.values()), text=" ".join(values.values()), record=values)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = re.sub(r"\s+", " ", value).strip()
    return value or None


@dataclass
class HeaderColumnRule:
    """Cell under the first header containing any keyword."""
    keywords: Sequence[str]
    strategy: str = "header_column"

    def apply(self, row: RawRow) -> Optional[FieldCandidate]:
        if not row.headers:
            return None
        for index, header in enumerate(row.headers):
            compact = re.sub(r"\s+", "", header)
            if any(keyword in compact for keyword in self.keywords) and index < len(row.cells):
                value = _clean(row.cells[index])
                if value:
                    return FieldCandidate(value, self.strategy)
        return None


@dataclass
class KeyAliasRule:
    """First non-empty value among record key aliases."""
    aliases: Sequence[str]
    strategy: str = "record_key"

    def apply(self, row: RawRow) -> Optional[FieldCandidate]:
        if row.record is None:
            return None
        for alias in self.aliases:
            value = _clean(row.record.get(alias))
            if value:
                return FieldCandidate(value, self.strategy)
        return None


@dataclass
class PositionRule:
    """Cell at a fixed column index, accepted only if the validator agrees."""
    index: int
    validator: Optional[Callable[[str], bool]] = None
    strategy: str = "position"

    def apply(self, row: RawRow) -> Optional[FieldCandidate]:
        if row.record is not None or self.index >= len(row.cells):
            return None
        value = _clean(row.cells[self.index])
        if not value:
            return None
        if self.validator and not self.validator(value):
            return None
        return FieldCandidate(value, self.strategy)


@dataclass
class KeywordCellRule:
    """
    Cell containing a label keyword.

    Returns the text after the label ("감정가 850,000,000원"), or the next
    cell when the label cell holds nothing else.
    """
    keywords: Sequence[str]
    strategy: str = "keyword_cell"

    def apply(self, row: RawRow) -> Optional[FieldCandidate]:
        for index, cell in enumerate(row.cells):
            for keyword in self.keywords:
                if keyword not in cell:
                    continue
                rest = _clean(cell.split(keyword, 1)[1].lstrip(" :："))
                if rest:
                    return FieldCandidate(rest, self.strategy)
                if index + 1 < len(row.cells):
                    following = _clean(row.cells[index + 1])
                    if following:
                        return FieldCandidate(following, self.strategy)
        return None


@dataclass
class RegexRule:
    """Regex search over the concatenated row text."""
    pattern: re.Pattern
    group: int = 0
    strategy: str = "regex"

    def apply(self, row: RawRow) -> Optional[FieldCandidate]:
        match = self.pattern.search(row.text)
        if not match:
            return None
        value = _clean(match.group(self.group))
        return FieldCandidate(value, self.strategy) if value else None


def _is_court(value: str) -> bool:
    return "법원" in value or value.endswith("지원") or value == "온비드"


def _is_property_type(value: str) -> bool:
    return classify_property_type(value) != PropertyType.OTHER


def _is_address(value: str) -> bool:
    return len(value) > 10 and bool(re.search(r"[시도군구읍면동리로길]\s", value + " "))


def _is_money(value: str) -> bool:
    return parse_currency(value) > 0


DATE_SHAPE = re.compile(
    r"\d{4}\s*[.\-/년]\s*\d{1,2}\s*[.\-/월]\s*\d{1,2}|(?<!\d)\d{8}(?!\d)|(?<!\d)\d{2}[.\-/]\d{1,2}[.\-/]\d{1,2}"
)


def _is_date(value: str) -> bool:
    return bool(DATE_SHAPE.search(value))


ADDRESS_PATTERN = re.compile(
    r"((?:서울|부산|대구|인천|광주|대전|울산|세종|경기|강원|충청|충북|충남|전라|전북|전남|경상|경북|경남|제주)"
    r"\S*\s+\S+[시군구](?:\s+\S+){1,4})"
)
MONEY_FRAGMENT = r"([\d,]+\s*원|\d+\s*억(?:\s*[\d,]+\s*만)?\s*원?|[\d,]+\s*만\s*원?)"
AREA_FRAGMENT = r"([\d,.]+\s*(?:㎡|m²|m2|평))"


class Rule(Protocol):
    strategy: str

    def apply(self, row: RawRow) -> Optional[FieldCandidate]: ...


FIELD_RULES: Dict[str, List[Rule]] = {
    "case_number": [
        HeaderColumnRule(("사건번호", "사건")),
        KeyAliasRule(("case_number", "사건번호", "caseNo", "prdctCltrSn", "CLTR_MNMT_NO")),
        PositionRule(0, looks_like_case_number),
        RegexRule(CASE_NUMBER_PATTERN),
    ],
    "item_number": [
        HeaderColumnRule(("물건번호",)),
        KeyAliasRule(("item_number", "물건번호")),
        RegexRule(re.compile(r"물건\s*번호\s*[:：]?\s*(\d+)"), group=1),
    ],
    "court_name": [
        HeaderColumnRule(("법원", "담당계")),
        KeyAliasRule(("court_name", "법원")),
        PositionRule(1, _is_court),
        RegexRule(re.compile(r"\S+(?:지방법원|지원)")),
    ],
    "property_type": [
        HeaderColumnRule(("물건종류", "용도", "종류")),
        KeyAliasRule(("property_type", "물건종류", "용도", "CTGR_FULL_NM", "prdctCltrNm")),
        PositionRule(2, _is_property_type),
        RegexRule(re.compile(r"(아파트|오피스텔|단독주택|다가구|다세대|빌라|연립|상가|근린|점포|토지|대지|임야)")),
    ],
    "address": [
        HeaderColumnRule(("소재지", "주소")),
        KeyAliasRule(("address", "소재지", "주소", "cltrMntnancePlc", "NMRD_ADRS", "LDNM_ADRS")),
        PositionRule(3, _is_address),
        KeywordCellRule(("소재지", "주소")),
        RegexRule(ADDRESS_PATTERN, group=1),
    ],
    "building_name": [
        HeaderColumnRule(("건물명", "단지명")),
        KeyAliasRule(("building_name", "건물명", "CLTR_NM")),
    ],
    "land_area": [
        HeaderColumnRule(("대지면적", "토지면적")),
        KeyAliasRule(("land_area", "대지면적", "토지면적")),
        RegexRule(re.compile(r"(?:대지|토지)\s*(?:면적)?\s*[:：]?\s*" + AREA_FRAGMENT), group=1),
    ],
    "building_area": [
        HeaderColumnRule(("건물면적", "전용면적")),
        KeyAliasRule(("building_area", "건물면적", "전용면적")),
        RegexRule(re.compile(r"(?:건물|전용)\s*(?:면적)?\s*[:：]?\s*" + AREA_FRAGMENT), group=1),
    ],
    "appraisal_value": [
        HeaderColumnRule(("감정가", "감정평가액")),
        KeyAliasRule(("appraisal_value", "감정가", "감정가액", "apprPc", "APZ_AMT")),
        PositionRule(4, _is_money),
        KeywordCellRule(("감정가액", "감정가")),
        RegexRule(re.compile(r"감정\S*\s*[:：]?\s*" + MONEY_FRAGMENT), group=1),
    ],
    "minimum_sale_price": [
        HeaderColumnRule(("최저매각가격", "최저가", "최저입찰가")),
        KeyAliasRule(("minimum_sale_price", "최저매각가격", "최저가", "biddingPrice", "MIN_BID_PRC")),
        PositionRule(5, _is_money),
        KeywordCellRule(("최저매각가격", "최저가")),
        RegexRule(re.compile(r"최저\S*\s*[:：]?\s*" + MONEY_FRAGMENT), group=1),
    ],
    "bid_deposit": [
        HeaderColumnRule(("입찰보증금", "매수보증금")),
        KeyAliasRule(("bid_deposit", "입찰보증금")),
        KeywordCellRule(("입찰보증금", "매수보증금")),
    ],
    "auction_date": [
        HeaderColumnRule(("매각기일", "입찰일", "경매일", "기일")),
        KeyAliasRule(("auction_date", "입찰일자", "매각기일", "biddingBgnDt", "PBCT_BEGN_DTM")),
        PositionRule(6, _is_date),
        KeywordCellRule(("매각기일", "입찰일자", "입찰일")),
        RegexRule(DATE_SHAPE),
    ],
    "auction_time": [
        KeyAliasRule(("auction_time", "입찰시간", "biddingBgnTm")),
        RegexRule(re.compile(r"(?<!\d)(\d{1,2}:\d{2})(?!\d)"), group=1),
    ],
    "failure_count": [
        HeaderColumnRule(("유찰",)),
        KeyAliasRule(("failure_count", "유찰횟수", "USCBD_CNT")),
        RegexRule(re.compile(r"유찰\s*\d+\s*회|\d+\s*회\s*유찰")),
    ],
    "status": [
        HeaderColumnRule(("진행상태", "상태", "결과")),
        KeyAliasRule(("status", "진행상태", "PBCT_CLTR_STAT_NM")),
        RegexRule(re.compile(r"(신건|진행|유찰|낙찰|매각(?!기일|가격|물건)|취하|취소|기각|정지)")),
    ],
    "tenant_status": [
        HeaderColumnRule(("임차인", "점유")),
        KeyAliasRule(("tenant_status", "임차인현황")),
    ],
    "notes": [
        HeaderColumnRule(("비고", "특이사항")),
        KeyAliasRule(("notes", "special_notes", "비고", "특이사항")),
    ],
}

# Header cells that mark a table row as a header row.
HEADER_KEYWORDS = (
    "사건번호", "물건번호", "소재지", "감정가", "최저", "매각기일", "용도", "물건종류", "법원", "비고",
)


def apply_rules(row: RawRow, rules: Sequence[Rule]) -> Optional[FieldCandidate]:
    """Run rules in order; first candidate wins."""
    for rule in rules:
        candidate = rule.apply(row)
        if candidate is not None:
            return candidate
    return None
