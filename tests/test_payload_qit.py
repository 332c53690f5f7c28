"""Tests for the QIT-like payload grammar."""

from datetime import datetime

import pytest

from nxscanner.payload import KIND_QIT, QitFields, parse

NOW = datetime(2025, 10, 15, 9, 0)
HASH = "0123456789abcdef0123"


def qit(*tokens: str, tag: str = "QIT", qcode: str = "QAB12", hash: str = HASH) -> str:
    """Build a QIT payload from its coded tokens."""
    return f"{tag}:" + ":".join(tokens) + f"::{qcode}::#:::#:{hash}"


def return_errors(errors: list[str]) -> list[str]:
    return [e for e in errors if "return" in e.lower() and not e.startswith("type:")]


class TestValidPayloads:
    def test_single_ticket(self):
        result = parse(qit("F123", "RRDL42", "SINGLE", "CST", "1", "0", "1510251200"), now=NOW)

        assert result.kind == KIND_QIT
        assert result.errors == []
        assert result.is_valid
        assert isinstance(result.fields, QitFields)
        assert result.fields.variant == "QIT"
        assert result.fields.flight == "F123"
        assert result.fields.rrdl == "RRDL42"
        assert result.fields.type == "SINGLE"
        assert result.fields.fare == "CST"
        assert result.fields.purchase is None
        assert result.fields.adults == 1
        assert result.fields.children == 0
        assert result.fields.depart == "1510251200"
        assert result.fields.return_ is None
        assert result.fields.qcode == "QAB12"
        assert result.fields.hash == HASH

    def test_second_tag_with_optional_tokens(self):
        text = qit("F9", "RETURN", "CFL", "1410251000", "2;1", "1510251200", "1710251800", tag="QIT2")
        result = parse(text, now=NOW)

        assert result.errors == []
        f = result.fields
        assert f.variant == "QIT2"
        assert f.rrdl is None
        assert f.type == "RETURN"
        assert f.fare == "CFL"
        assert f.purchase == "1410251000"
        assert (f.adults, f.children) == (2, 1)
        assert f.depart == "1510251200"
        assert f.return_ == "1710251800"

    def test_type_is_case_insensitive(self):
        result = parse(qit("F1", "single", "CST", "1", "0", "1510251200"), now=NOW)
        assert result.errors == []
        assert result.fields.type == "SINGLE"

    def test_six_digit_dates(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "151025"), now=NOW)
        assert result.errors == []
        assert result.fields.depart == "151025"

    def test_trailing_colon_ignored(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "1510251200") + ":", now=NOW)
        assert result.errors == []
        assert result.fields.hash == HASH

    def test_counts_after_depart(self):
        result = parse(qit("F1", "RRDL7", "SINGLE", "CST", "1510251200", "2", "1"), now=NOW)
        assert result.errors == []
        assert result.fields.purchase is None
        assert result.fields.depart == "1510251200"
        assert (result.fields.adults, result.fields.children) == (2, 1)

    def test_purchase_without_counts(self):
        result = parse(qit("F1", "SINGLE", "CST", "1410251000", "1510251200"), now=NOW)
        assert result.errors == []
        assert result.fields.purchase == "1410251000"
        assert result.fields.depart == "1510251200"

    def test_counts_are_optional(self):
        result = parse(qit("F1", "SINGLE", "CST", "1510251200"), now=NOW)
        assert result.errors == []
        assert result.fields.adults is None
        assert result.fields.children is None


class TestStructure:
    def test_missing_separator(self):
        result = parse("QIT:F1:SINGLE:CST:1:0:1510251200::QAB12", now=NOW)
        assert result.kind == KIND_QIT
        assert result.fields is None
        assert result.errors == ["missing QCODE separator '::#:::#:'"]

    def test_missing_type_and_fare(self):
        result = parse(qit("F1", "1", "0", "1510251200"), now=NOW)
        assert result.errors == [
            "type: must be SINGLE or RETURN",
            "fare: expected CST/CFL/CFLL-like code",
        ]
        assert result.fields.depart == "1510251200"

    def test_invalid_flight(self):
        result = parse(qit("F-1", "SINGLE", "CST", "1", "0", "1510251200"), now=NOW)
        assert result.errors == ["flight: invalid code"]
        assert result.fields.flight == "F-1"

    def test_bad_hash_and_qcode(self):
        text = qit("F1", "SINGLE", "CST", "1", "0", "1510251200", qcode="XAB", hash="xyz")
        result = parse(text, now=NOW)
        assert result.errors == ["hash: invalid hex id", "qcode: invalid format"]
        assert result.fields.hash == "xyz"

    def test_count_pair_with_bad_child(self):
        result = parse(qit("F1", "SINGLE", "CST", "2;x", "1510251200"), now=NOW)
        assert result.errors == ["children: must be integer >= 0"]
        assert result.fields.adults == 2
        assert result.fields.children is None

    def test_invalid_depart_kept_raw(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "3102251200"), now=NOW)
        assert result.errors == ["depart: invalid DDMMYY[HHMM]"]
        assert result.fields.depart == "3102251200"


class TestCrossFieldRules:
    def test_single_with_return_token(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "1510251200", "1610251200"), now=NOW)
        assert result.errors == ["return: must be empty for SINGLE tickets"]
        assert result.fields.return_ == "1610251200"

    @pytest.mark.parametrize("ret", ["1610251200", "0101201200", "161025"])
    def test_single_with_any_return_has_one_return_error(self, ret):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "1510251200", ret), now=NOW)
        assert len(return_errors(result.errors)) == 1

    def test_return_before_depart(self):
        result = parse(qit("F1", "RETURN", "CST", "1", "0", "1410250800", "1310250800"), now=NOW)
        assert result.errors == ["return: must be after or equal to depart"]

    def test_return_equal_to_depart(self):
        result = parse(qit("F1", "RETURN", "CST", "1", "0", "1510251200", "1510251200"), now=NOW)
        assert result.errors == []

    def test_return_missing(self):
        result = parse(qit("F1", "RETURN", "CST", "1", "0", "1510251200"), now=NOW)
        assert result.errors == ["return: invalid or missing DDMMYY[HHMM] for RETURN ticket"]

    def test_purchase_after_depart(self):
        result = parse(qit("F1", "SINGLE", "CST", "1510251300", "1", "0", "1510251200"), now=NOW)
        assert result.errors == ["purchase: must not be after depart"]

    def test_invalid_purchase(self):
        result = parse(qit("F1", "SINGLE", "CST", "3213251200", "1", "0", "1510251200"), now=NOW)
        assert result.errors == ["purchase: invalid DDMMYY[HHMM]"]


class TestProximity:
    def test_depart_too_far_ahead(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "2010251200"), now=NOW)
        assert result.errors == ["depart: more than 2 days away from now"]

    def test_exactly_two_days_ahead_allowed(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "1710250900"), now=NOW)
        assert result.errors == []

    def test_past_depart_allowed(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "0110250900"), now=NOW)
        assert result.errors == []


class TestOpenReturn:
    def test_future_return_clears_invalid_depart(self):
        result = parse(qit("F1", "RETURN", "CST", "1", "0", "3102251200", "1610251200"), now=NOW)
        assert result.errors == []
        assert result.fields.depart == "3102251200"

    def test_future_return_clears_proximity_error(self):
        result = parse(qit("F1", "RETURN", "CST", "1", "0", "2010251200", "2110251200"), now=NOW)
        assert result.errors == []

    def test_expired_return_keeps_depart_errors(self):
        result = parse(qit("F1", "RETURN", "CST", "1", "0", "3102251200", "1410251200"), now=NOW)
        assert result.errors == ["depart: invalid DDMMYY[HHMM]"]

    def test_other_errors_survive(self):
        text = qit("F1", "RETURN", "CST", "1", "0", "3102251200", "1610251200", hash="nothex")
        result = parse(text, now=NOW)
        assert result.errors == ["hash: invalid hex id"]

    def test_single_is_never_relaxed(self):
        result = parse(qit("F1", "SINGLE", "CST", "1", "0", "3102251200"), now=NOW)
        assert result.errors == ["depart: invalid DDMMYY[HHMM]"]


class TestLegacyLayout:
    def test_return_with_counts_after_depart(self):
        text = qit("F1", "RRDL7", "RETURN", "CST", "1510251200", "2", "1", "1610251200")
        result = parse(text, now=NOW)

        assert result.errors == []
        assert result.fields.purchase is None
        assert result.fields.depart == "1510251200"
        assert result.fields.return_ == "1610251200"
        assert (result.fields.adults, result.fields.children) == (2, 1)

    def test_return_with_count_pair_after_depart(self):
        result = parse(qit("F1", "RETURN", "CST", "1510251200", "2;0", "1610251200"), now=NOW)
        assert result.errors == []
        assert result.fields.depart == "1510251200"
        assert result.fields.return_ == "1610251200"

    def test_return_two_dates_without_counts(self):
        result = parse(qit("F1", "RETURN", "CST", "1510251200", "1610251200"), now=NOW)
        assert result.errors == []
        assert result.fields.purchase is None
        assert result.fields.return_ == "1610251200"

    def test_single_with_purchase_and_counts_between(self):
        result = parse(qit("F1", "SINGLE", "CST", "1410251000", "1", "0", "1510251200"), now=NOW)
        assert result.errors == []
        assert result.fields.purchase == "1410251000"
        assert result.fields.depart == "1510251200"


class TestMisspelledTokens:
    def test_misspelled_type_kept_raw(self):
        result = parse(qit("F1", "SINGEL", "CST", "1", "0", "1510251200"), now=NOW)

        assert result.errors == ["type: must be SINGLE or RETURN"]
        assert result.fields.type == "SINGEL"
        assert result.fields.fare == "CST"
        assert result.fields.depart == "1510251200"
        assert (result.fields.adults, result.fields.children) == (1, 0)

    def test_misspelled_fare_kept_raw(self):
        result = parse(qit("F1", "SINGLE", "CST1", "1", "0", "1510251200"), now=NOW)

        assert result.errors == ["fare: expected CST/CFL/CFLL-like code"]
        assert result.fields.fare == "CST1"
        assert result.fields.depart == "1510251200"
