"""Tests for entry command validation and lineage resolution."""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from plotter.data.entries.schemas import CreateEntryCommand, FieldConsistencyError
from plotter.data.entries.service import resolve_lineage


def command(**fields):
    values = {
        "entry_type": "income",
        "recurrence_type": "one_time",
        "title": "Bonus",
        "amount": "250.00",
        "start_date": "2025-03-01",
    }
    values.update(fields)
    return CreateEntryCommand(**values)


def blamed_field(exc_info) -> str:
    return exc_info.value.errors()[0]["ctx"]["error"].field


# =============================================================================
# Field rules
# =============================================================================

class TestCreateEntryCommand:

    def test_valid_one_time(self):
        cmd = command()
        assert cmd.amount == Decimal("250.00")
        assert cmd.start_date == date(2025, 3, 1)

    def test_valid_weekly(self):
        # 2025-03-05 is a Wednesday
        cmd = command(recurrence_type="weekly", start_date="2025-03-05", weekday=3)
        assert cmd.weekday == 3

    def test_valid_monthly(self):
        cmd = command(recurrence_type="monthly", day_of_month=31)
        assert cmd.day_of_month == 31

    @pytest.mark.parametrize("fields", [
        {"title": ""},
        {"title": "x" * 121},
        {"description": "x" * 501},
        {"amount": "0"},
        {"amount": "-5"},
        {"amount": "10.001"},
        {"amount": "12345678901.00"},
        {"start_date": "2025-13-01"},
        {"weekday": 7, "recurrence_type": "weekly"},
        {"day_of_month": 0, "recurrence_type": "monthly"},
        {"day_of_month": 32, "recurrence_type": "monthly"},
        {"entry_type": "transfer"},
        {"recurrence_type": "yearly"},
    ])
    def test_field_rules(self, fields):
        with pytest.raises(ValidationError):
            command(**fields)

    def test_end_before_start(self):
        with pytest.raises(ValidationError) as exc_info:
            command(end_date="2025-02-28")
        assert blamed_field(exc_info) == "end_date"

    def test_end_equal_to_start(self):
        assert command(end_date="2025-03-01").end_date == date(2025, 3, 1)

    @pytest.mark.parametrize("fields", [
        {"recurrence_type": "one_time", "weekday": 6},
        {"recurrence_type": "one_time", "day_of_month": 1},
        {"recurrence_type": "weekly"},
        {"recurrence_type": "weekly", "weekday": 6, "day_of_month": 1},
        {"recurrence_type": "monthly"},
        {"recurrence_type": "monthly", "day_of_month": 1, "weekday": 6},
    ])
    def test_recurrence_field_combinations(self, fields):
        with pytest.raises(ValidationError) as exc_info:
            command(**fields)
        assert blamed_field(exc_info) == "recurrence_type"

    def test_weekly_weekday_must_match_start_date(self):
        # 2025-03-01 is a Saturday (6)
        with pytest.raises(ValidationError) as exc_info:
            command(recurrence_type="weekly", weekday=1)
        assert blamed_field(exc_info) == "weekday"

    def test_consistency_error_carries_field(self):
        err = FieldConsistencyError("weekday", "bad weekday")
        assert err.field == "weekday"
        assert str(err) == "bad weekday"


# =============================================================================
# Lineage
# =============================================================================

class TestResolveLineage:

    def test_root_has_no_lineage(self):
        assert resolve_lineage({"ser_a": None}, "ser_a") == []

    def test_chain_nearest_first(self):
        parents = {"ser_a": None, "ser_b": "ser_a", "ser_c": "ser_b"}
        assert resolve_lineage(parents, "ser_c") == ["ser_b", "ser_a"]

    def test_stops_at_missing_parent(self):
        parents = {"ser_b": "ser_gone", "ser_c": "ser_b"}
        assert resolve_lineage(parents, "ser_c") == ["ser_b"]

    def test_cycle_terminates(self):
        parents = {"ser_a": "ser_c", "ser_b": "ser_a", "ser_c": "ser_b"}
        assert resolve_lineage(parents, "ser_c") == ["ser_b", "ser_a"]

    def test_unknown_series(self):
        assert resolve_lineage({}, "ser_x") == []
