"""
Address Standardization Transformer

Normalizes Korean lot and road addresses reported by auction sources.
"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StandardizedAddress:
    """
    Standardized address components.

    Attributes:
        sido: Province-level unit (서울특별시, 경기도, ...)
        sigungu: City/county/district (강남구, 수원시 영통구, ...)
        remainder: Everything after sigungu (동/로/번지/호)
        full_address: Complete standardized address
    """
    sido: Optional[str] = None
    sigungu: Optional[str] = None
    remainder: Optional[str] = None
    full_address: Optional[str] = None


class KoreanAddressStandardizer:
    """
    Standardizes addresses to a consistent format across sources.

    Strips label prefixes, collapses whitespace, and expands abbreviated
    province names to their official form.
    """

    PROVINCES = {
        '서울': '서울특별시', '서울시': '서울특별시',
        '부산': '부산광역시', '부산시': '부산광역시',
        '대구': '대구광역시', '대구시': '대구광역시',
        '인천': '인천광역시', '인천시': '인천광역시',
        '광주': '광주광역시', '광주시': '광주광역시',
        '대전': '대전광역시', '대전시': '대전광역시',
        '울산': '울산광역시', '울산시': '울산광역시',
        '세종': '세종특별자치시', '세종시': '세종특별자치시',
        '경기': '경기도',
        '강원': '강원특별자치도', '강원도': '강원특별자치도',
        '충북': '충청북도',
        '충남': '충청남도',
        '전북': '전북특별자치도', '전라북도': '전북특별자치도',
        '전남': '전라남도',
        '경북': '경상북도',
        '경남': '경상남도',
        '제주': '제주특별자치도', '제주도': '제주특별자치도',
    }

    OFFICIAL_PROVINCES = frozenset(PROVINCES.values()) | {'전라북도', '강원도'}

    LABEL_PREFIX = re.compile(r"^\s*(?:주소|소재지|물건소재지)\s*[:：]?\s*")

    def __init__(self):
        """Initialize address standardizer."""
        logger.debug("address_standardizer_initialized")

    def clean(self, address: Optional[str]) -> str:
        """Strip label prefixes and collapse whitespace."""
        if not address:
            return ""
        address = self.LABEL_PREFIX.sub("", str(address))
        return re.sub(r"\s+", " ", address).strip()

    def standardize(self, address: Optional[str]) -> StandardizedAddress:
        """
        Standardize a Korean address.

        Args:
            address: Raw address text

        Returns:
            StandardizedAddress with normalized components
        """
        cleaned = self.clean(address)
        if not cleaned:
            logger.debug("empty_address_provided")
            return StandardizedAddress()

        tokens = cleaned.split(" ")
        sido = self._expand_province(tokens[0])
        if sido:
            tokens = tokens[1:]

        sigungu, tokens = self._split_sigungu(tokens)

        remainder = " ".join(tokens) or None
        full_address = " ".join(part for part in (sido, sigungu, remainder) if part)

        return StandardizedAddress(
            sido=sido,
            sigungu=sigungu,
            remainder=remainder,
            full_address=full_address,
        )

    def _expand_province(self, token: str) -> Optional[str]:
        if token in self.OFFICIAL_PROVINCES:
            return token
        return self.PROVINCES.get(token)

    def _split_sigungu(self, tokens: list) -> Tuple[Optional[str], list]:
        """
        Take the leading 시/군/구 tokens.

        A 시 followed by a 구 (수원시 영통구) is kept together.
        """
        if not tokens or not re.search(r"[시군구]$", tokens[0]):
            return None, tokens

        parts = [tokens[0]]
        if tokens[0].endswith("시") and len(tokens) > 1 and tokens[1].endswith("구"):
            parts.append(tokens[1])
        return " ".join(parts), tokens[len(parts):]
