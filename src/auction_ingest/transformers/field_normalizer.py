"""
Field Normalization

Pure conversions from raw listing text (Korean court-auction conventions) to
typed values. Every function is total: unparsable input yields a fallback
value, never an exception.
"""
import re
from dataclasses import dataclass
from datetime import date, time, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Tuple

from src.auction_ingest.models.listing import ListingStatus, PropertyType

# 2024타경12345, 2024 타 12345, 2024-001234
CASE_NUMBER_PATTERN = re.compile(r"(\d{4}\s*타\s*경\s*\d+|\d{4}\s*타\s*\d+|\d{4}-\d{3,})")

EOK = 100_000_000
MAN = 10_000

FALLBACK_DATE_OFFSET_DAYS = 30

SQUARE_METERS_PER_PYEONG = Decimal("3.305785")
_AREA_QUANTUM = Decimal("0.01")

_CURRENCY_ALLOWED = re.compile(r"[^\d억만원,.]")
_EOK_PATTERN = re.compile(r"(\d+(?:\.\d+)?)억")
_MAN_PATTERN = re.compile(r"(\d+)만")
_UNIT_REMAINDER_PATTERN = re.compile(r"만(\d+)원?$")
_BARE_DIGITS_PATTERN = re.compile(r"\d+")

_DATE_PATTERNS: List[Tuple[re.Pattern, bool]] = [
    # (pattern, two_digit_year)
    (re.compile(r"(\d{4})\s*[.\-/]\s*(\d{1,2})\s*[.\-/]\s*(\d{1,2})"), False),
    (re.compile(r"(\d{4})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일?"), False),
    (re.compile(r"(?<!\d)(\d{4})(\d{2})(\d{2})(?:\d{4}|\d{6})?(?!\d)"), False),
    (re.compile(r"(?<!\d)(\d{2})\s*[.\-/]\s*(\d{1,2})\s*[.\-/]\s*(\d{1,2})(?!\d)"), True),
    (re.compile(r"(?<!\d)(\d{2})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일?"), True),
]

_CLOCK_PATTERN = re.compile(r"(?<!\d)(\d{1,2}):(\d{2})(?::(\d{2}))?")
_KOREAN_TIME_PATTERN = re.compile(r"(?<!\d)(\d{1,2})\s*시(?:\s*(\d{1,2})\s*분)?")

_SQUARE_METER_PATTERN = re.compile(r"([\d,]+(?:\.\d+)?)\s*(?:㎡|m²|m2|제곱미터)")
_PYEONG_PATTERN = re.compile(r"([\d,]+(?:\.\d+)?)\s*평")
_BARE_NUMBER_PATTERN = re.compile(r"[\d,]+(?:\.\d+)?")

_FAILURE_COUNT_PATTERNS = [
    re.compile(r"유찰\s*\(?\s*(\d+)\s*회?"),
    re.compile(r"(\d+)\s*회\s*유찰"),
    re.compile(r"(\d+)\s*회"),
]

# Checked in order; first keyword contained in the text wins.
PROPERTY_TYPE_KEYWORDS: List[Tuple[str, PropertyType]] = [
    ("아파트", PropertyType.APARTMENT),
    ("오피스텔", PropertyType.STUDIO_OFFICE),
    ("단독", PropertyType.DETACHED_HOUSE),
    ("다가구", PropertyType.DETACHED_HOUSE),
    ("다세대", PropertyType.MULTI_UNIT),
    ("빌라", PropertyType.MULTI_UNIT),
    ("연립", PropertyType.MULTI_UNIT),
    ("상가", PropertyType.COMMERCIAL),
    ("근린", PropertyType.COMMERCIAL),
    ("점포", PropertyType.COMMERCIAL),
    ("토지", PropertyType.LAND),
    ("대지", PropertyType.LAND),
    ("임야", PropertyType.LAND),
]

STATUS_KEYWORDS: List[Tuple[Tuple[str, ...], ListingStatus]] = [
    (("신건", "진행"), ListingStatus.ACTIVE),
    (("유찰",), ListingStatus.FAILED),
    (("낙찰", "매각"), ListingStatus.SOLD),
    (("취하", "취소", "기각", "정지"), ListingStatus.CANCELLED),
]

# (fragment, canonical name); specific fragments precede the generic 서울.
COURT_FRAGMENTS: List[Tuple[str, str]] = [
    ("서울중앙", "서울중앙지방법원"),
    ("서울동부", "서울동부지방법원"),
    ("서울서부", "서울서부지방법원"),
    ("서울남부", "서울남부지방법원"),
    ("서울북부", "서울북부지방법원"),
    ("의정부", "의정부지방법원"),
    ("인천", "인천지방법원"),
    ("수원", "수원지방법원"),
    ("춘천", "춘천지방법원"),
    ("대전", "대전지방법원"),
    ("청주", "청주지방법원"),
    ("대구", "대구지방법원"),
    ("부산", "부산지방법원"),
    ("울산", "울산지방법원"),
    ("창원", "창원지방법원"),
    ("광주", "광주지방법원"),
    ("전주", "전주지방법원"),
    ("제주", "제주지방법원"),
    ("서울", "서울중앙지방법원"),
    ("온비드", "온비드"),
]


@dataclass(frozen=True)
class ParsedDate:
    """Parsed auction date and whether it came from the fallback policy."""
    value: date
    is_estimated: bool = False


def collapse_whitespace(text: Optional[str]) -> str:
    if not text:
        return ""
    return re.sub(r"\s+", " ", str(text)).strip()


def parse_currency(text: Optional[str]) -> int:
    """
    Parse a KRW amount.

    Handles 억/만 unit notation ("1억5000만원"), comma-separated digits
    ("850,000,000원") and bare digits. Unparsable input yields 0.

    Args:
        text: Raw amount text

    Returns:
        Amount in KRW
    """
    if text is None:
        return 0

    cleaned = _CURRENCY_ALLOWED.sub("", str(text)).replace(",", "")
    if not cleaned:
        return 0

    total = 0
    eok = _EOK_PATTERN.search(cleaned)
    if eok:
        total += int(Decimal(eok.group(1)) * EOK)
    man = _MAN_PATTERN.search(cleaned)
    if man:
        total += int(man.group(1)) * MAN
    if total:
        remainder = _UNIT_REMAINDER_PATTERN.search(cleaned)
        if remainder:
            total += int(remainder.group(1))
        return total

    digits = _BARE_DIGITS_PATTERN.search(cleaned)
    return int(digits.group(0)) if digits else 0


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: Optional[str], today: Optional[date] = None) -> ParsedDate:
    """
    Parse an auction date.

    Recognizes YYYY-MM-DD, YYYY.MM.DD, YYYY/MM/DD, YYYY년 MM월 DD일, YYYYMMDD
    and the same forms with a two-digit year (20YY). Anything else resolves
    to today + 30 days and is flagged as estimated.

    Args:
        text: Raw date text
        today: Reference date for the fallback (defaults to today)

    Returns:
        ParsedDate
    """
    if text:
        for pattern, two_digit_year in _DATE_PATTERNS:
            for match in pattern.finditer(str(text)):
                year, month, day = (int(part) for part in match.groups())
                if two_digit_year:
                    year += 2000
                parsed = _build_date(year, month, day)
                if parsed:
                    return ParsedDate(value=parsed)

    today = today or date.today()
    return ParsedDate(value=today + timedelta(days=FALLBACK_DATE_OFFSET_DAYS), is_estimated=True)


def parse_time(text: Optional[str]) -> Optional[time]:
    """Parse HH:MM[:SS] or HH시 MM분; None when absent or out of range."""
    if not text:
        return None

    match = _CLOCK_PATTERN.search(str(text))
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        second = int(match.group(3)) if match.group(3) else 0
    else:
        match = _KOREAN_TIME_PATTERN.search(str(text))
        if not match:
            return None
        hour = int(match.group(1))
        minute = int(match.group(2)) if match.group(2) else 0
        second = 0

    try:
        return time(hour, minute, second)
    except ValueError:
        return None


def _to_decimal(raw: str) -> Optional[Decimal]:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None


def parse_area(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse an area in square meters.

    Values in 평 are converted (1평 = 3.305785 m²). A bare number is taken
    as m². Result is rounded to two decimals.
    """
    if not text:
        return None
    text = str(text).strip()

    match = _SQUARE_METER_PATTERN.search(text)
    if match:
        value = _to_decimal(match.group(1))
    else:
        match = _PYEONG_PATTERN.search(text)
        if match:
            value = _to_decimal(match.group(1))
            value = value * SQUARE_METERS_PER_PYEONG if value is not None else None
        elif _BARE_NUMBER_PATTERN.fullmatch(text):
            value = _to_decimal(text)
        else:
            value = None

    if value is None:
        return None
    try:
        return value.quantize(_AREA_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the decimal context holds
        return None


def parse_failure_count(text: Optional[str]) -> int:
    """Number of failed rounds from "유찰 2회" style text; 0 when absent."""
    if not text:
        return 0
    text = str(text).strip()
    if text.isdigit():
        return int(text)
    if "유찰" not in text and "회" not in text:
        return 0
    for pattern in _FAILURE_COUNT_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return 0


def classify_property_type(text: Optional[str]) -> PropertyType:
    """Map a Korean property description onto a canonical category."""
    if not text:
        return PropertyType.OTHER
    text = str(text).strip()

    for member in PropertyType:
        if text.lower() == member.value:
            return member

    for keyword, property_type in PROPERTY_TYPE_KEYWORDS:
        if keyword in text:
            return property_type
    return PropertyType.OTHER


def map_status(text: Optional[str]) -> ListingStatus:
    """Map a Korean progress keyword onto a listing status (default active)."""
    if not text:
        return ListingStatus.ACTIVE
    text = str(text).strip()

    for member in ListingStatus:
        if text.lower() == member.value:
            return member

    for keywords, status in STATUS_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return status
    return ListingStatus.ACTIVE


def normalize_court_name(text: Optional[str]) -> Optional[str]:
    """
    Resolve a court name from free text.

    Branch courts (…지원) are kept as written. Unknown text is returned
    whitespace-collapsed so it can still seed a new court row.
    """
    text = collapse_whitespace(text)
    if not text:
        return None
    if text.endswith("지원"):
        return text

    for fragment, canonical in COURT_FRAGMENTS:
        if fragment in text:
            return canonical
    return text


def normalize_case_number(text: Optional[str]) -> Optional[str]:
    """Remove all whitespace from a case number; empty yields None."""
    if text is None:
        return None
    normalized = re.sub(r"\s+", "", str(text))
    return normalized or None


def looks_like_case_number(text: Optional[str]) -> bool:
    return bool(text and CASE_NUMBER_PATTERN.search(str(text)))
