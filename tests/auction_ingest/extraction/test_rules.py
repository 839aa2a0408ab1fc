"""
Tests for field extraction rules
"""
import re

from src.auction_ingest.extraction.rules import (
    FIELD_RULES,
    HeaderColumnRule,
    KeyAliasRule,
    KeywordCellRule,
    PositionRule,
    RawRow,
    RegexRule,
    apply_rules,
)
from src.auction_ingest.models.listing import FieldCandidate


def table_row(cells, headers=None) -> RawRow:
    return RawRow(cells=cells, text=" ".join(cells), headers=headers)


class TestHeaderColumnRule:
    def test_matches_header_keyword(self):
        row = table_row(["2024타경1", "서울 강남구 역삼동 1"], headers=["사건 번호", "소재지 및 내역"])
        assert HeaderColumnRule(("소재지",)).apply(row) == FieldCandidate("서울 강남구 역삼동 1", "header_column")

    def test_no_headers(self):
        assert HeaderColumnRule(("소재지",)).apply(table_row(["a"])) is None

    def test_empty_cell_skipped(self):
        row = table_row(["", "x"], headers=["소재지", "비고"])
        assert HeaderColumnRule(("소재지",)).apply(row) is None


class TestKeyAliasRule:
    def test_first_alias_with_value(self):
        row = RawRow.from_record({"prdctCltrSn": "", "CLTR_MNMT_NO": "2024-01234"})
        rule = KeyAliasRule(("case_number", "prdctCltrSn", "CLTR_MNMT_NO"))
        assert rule.apply(row) == FieldCandidate("2024-01234", "record_key")

    def test_ignored_for_table_rows(self):
        assert KeyAliasRule(("case_number",)).apply(table_row(["2024타경1"])) is None

    def test_non_string_values(self):
        row = RawRow.from_record({"appraisal_value": 1250000000})
        assert KeyAliasRule(("appraisal_value",)).apply(row).value == "1250000000"


class TestPositionRule:
    def test_validator_accepts(self):
        rule = PositionRule(0, lambda value: value.startswith("2024"))
        assert rule.apply(table_row(["2024타경1"])) == FieldCandidate("2024타경1", "position")

    def test_validator_rejects(self):
        rule = PositionRule(0, lambda value: value.startswith("2024"))
        assert rule.apply(table_row(["물건번호"])) is None

    def test_index_out_of_range(self):
        assert PositionRule(5).apply(table_row(["a", "b"])) is None

    def test_ignored_for_records(self):
        assert PositionRule(0).apply(RawRow.from_record({"a": "b"})) is None


class TestKeywordCellRule:
    def test_value_in_same_cell(self):
        row = table_row(["감정가: 850,000,000원"])
        assert KeywordCellRule(("감정가",)).apply(row).value == "850,000,000원"

    def test_value_in_next_cell(self):
        row = table_row(["감정가", "850,000,000원"])
        assert KeywordCellRule(("감정가",)).apply(row).value == "850,000,000원"

    def test_missing(self):
        assert KeywordCellRule(("감정가",)).apply(table_row(["최저가 1원"])) is None


class TestRegexRule:
    def test_group(self):
        rule = RegexRule(re.compile(r"물건번호\s*(\d+)"), group=1)
        assert rule.apply(table_row(["물건번호 3"])) == FieldCandidate("3", "regex")

    def test_no_match(self):
        assert RegexRule(re.compile(r"\d{4}")).apply(table_row(["abc"])) is None


class TestFieldRuleTable:
    """The configured rule table applied to the canonical court row"""

    ROW = table_row([
        "2024타경12345",
        "서울중앙지방법원",
        "아파트",
        "서울특별시 강남구 역삼동 123",
        "감정가 850,000,000원",
        "최저가 595,000,000원",
        "2024-12-15",
    ])

    def test_positional_fields(self):
        assert apply_rules(self.ROW, FIELD_RULES["case_number"]).value == "2024타경12345"
        assert apply_rules(self.ROW, FIELD_RULES["court_name"]).value == "서울중앙지방법원"
        assert apply_rules(self.ROW, FIELD_RULES["property_type"]).value == "아파트"
        assert apply_rules(self.ROW, FIELD_RULES["address"]).value == "서울특별시 강남구 역삼동 123"
        assert apply_rules(self.ROW, FIELD_RULES["appraisal_value"]).value == "감정가 850,000,000원"
        assert apply_rules(self.ROW, FIELD_RULES["minimum_sale_price"]).value == "최저가 595,000,000원"
        assert apply_rules(self.ROW, FIELD_RULES["auction_date"]).value == "2024-12-15"

    def test_absent_fields(self):
        assert apply_rules(self.ROW, FIELD_RULES["status"]) is None
        assert apply_rules(self.ROW, FIELD_RULES["bid_deposit"]) is None

    def test_falls_through_to_regex_when_columns_shift(self):
        row = table_row(["1", "서울특별시 송파구 잠실동 40", "2023타경555 서울동부지방법원 아파트"])

        case = apply_rules(row, FIELD_RULES["case_number"])
        court = apply_rules(row, FIELD_RULES["court_name"])

        assert case == FieldCandidate("2023타경555", "regex")
        assert court == FieldCandidate("서울동부지방법원", "regex")

    def test_status_regex_ignores_price_labels(self):
        row = table_row(["2024타경1", "최저매각가격 100,000,000원", "매각기일 2024.12.15"])
        assert apply_rules(row, FIELD_RULES["status"]) is None
