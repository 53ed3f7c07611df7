"""Tests for habitgrid/models.py — entities, validation and results."""

from habitgrid.errors import Transient
from habitgrid.models import (
    ColorTag,
    DeleteOutcome,
    Habit,
    Result,
    clamp_display_days,
    validate_habit,
)


def test_color_tag_parse_known():
    assert ColorTag.parse("purple") is ColorTag.PURPLE
    assert ColorTag.parse(" Red ") is ColorTag.RED


def test_color_tag_parse_unknown_falls_back_to_green():
    assert ColorTag.parse("magenta") is ColorTag.GREEN
    assert ColorTag.parse(None) is ColorTag.GREEN


def test_clamp_display_days():
    assert clamp_display_days(0) == 1
    assert clamp_display_days(500) == 90
    assert clamp_display_days("14") == 14
    assert clamp_display_days("abc") == 28


def test_validate_habit_valid():
    assert validate_habit("Read", 28) == []


def test_validate_habit_empty_name():
    errors = validate_habit("   ")
    assert any("name" in e for e in errors)


def test_validate_habit_days_out_of_range():
    assert any("display_days" in e for e in validate_habit("Read", 91))
    assert any("display_days" in e for e in validate_habit("Read", 0))
    assert any("display_days" in e for e in validate_habit("Read", True))


def test_habit_defaults():
    habit = Habit(id="h1", name="Read")
    assert habit.display_days == 28
    assert habit.color_tag is ColorTag.GREEN


def test_habit_from_dict_accepts_camel_case():
    habit = Habit.from_dict({"id": "h1", "name": "Run", "displayDays": 14, "colorTag": "blue"})
    assert habit.display_days == 14
    assert habit.color_tag is ColorTag.BLUE
    assert habit.to_dict() == {"id": "h1", "name": "Run", "displayDays": 14, "colorTag": "blue"}


def test_result_helpers():
    ok = Result.success(3)
    assert ok.ok and ok.value == 3 and ok.error_kind is None
    failed = Result.failure(Transient("offline"))
    assert not failed.ok
    assert failed.error_kind == "transient"


def test_delete_outcome_orphaned():
    assert DeleteOutcome("h1", habit_deleted=True).orphaned is False
    assert DeleteOutcome("h1", habit_deleted=True, records_failed=["r1"]).orphaned is True
    assert DeleteOutcome("h1", habit_deleted=True, cascade_error=Transient()).orphaned is True
    assert DeleteOutcome("h1").orphaned is False
