# =============================================================================
# tests/test_utils.py - Shared Utility Tests
# =============================================================================

from datetime import datetime, timedelta, timezone

import pytest

from lib.utils import clean_text, normalize_email, parse_timestamp


class TestParseTimestamp:

    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value, micros", [
        ("2025-01-01T00:00:00.12345+00:00", 123450),
        ("2025-01-01T00:00:00.1+00:00", 100000),
    ])
    def test_trimmed_fractional_seconds(self, value, micros):
        parsed = parse_timestamp(value)

        assert parsed == datetime(2025, 1, 1, 0, 0, 0, micros, tzinfo=timezone.utc)

    def test_offset_preserved(self):
        parsed = parse_timestamp("2025-01-01T05:30:00+05:30")
        assert parsed == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(hours=5, minutes=30)

    def test_naive_treated_as_utc(self):
        assert parse_timestamp("2025-01-01T12:00:00").tzinfo is not None
        assert parse_timestamp(datetime(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "garbage", "next tuesday"])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None

    def test_aware_comparison_with_now(self):
        expires = parse_timestamp("2200-01-01T00:00:00.5+00:00")
        assert expires > datetime.now(timezone.utc)


class TestText:

    def test_clean_text(self):
        assert clean_text("  hello  ", 3) == "hel"
        assert clean_text("   ", 10) is None
        assert clean_text(None, 10) is None

    def test_normalize_email(self):
        assert normalize_email(" Ada@Example.COM ") == "ada@example.com"
