"""
Tests unitarios de normalizacion de valores de ProductBoard.
"""
import pytest

from roadmap_sync.shared.utils.normalization import (
    extract_person,
    format_date,
    nested_get,
    normalize_health,
)


class TestFormatDate:
    def test_truncates_timestamp_to_calendar_date(self):
        assert format_date("2025-05-05T00:00:00Z") == "2025-05-05"

    def test_keeps_plain_date(self):
        assert format_date("2025-05-05") == "2025-05-05"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_input_is_none(self, value):
        assert format_date(value) is None


class TestNormalizeHealth:
    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_health_is_unknown(self, value):
        assert normalize_health(value) == "unknown"

    def test_lowercases(self):
        assert normalize_health("On-Track") == "on-track"


class TestExtractPerson:
    def test_plain_string(self):
        assert extract_person("Ana") == "Ana"

    def test_first_non_empty_key_wins(self):
        assert extract_person({"name": "", "displayName": "Ana P", "email": "ana@x.io"}) == "Ana P"

    def test_missing(self):
        assert extract_person(None) is None
        assert extract_person({"id": "u1"}) is None


def test_nested_get_stops_on_missing_segment():
    data = {"owner": {"email": "pm@x.io"}, "status": None}
    assert nested_get(data, "owner.email") == "pm@x.io"
    assert nested_get(data, "status.name") is None
    assert nested_get(data, "links.html") is None
