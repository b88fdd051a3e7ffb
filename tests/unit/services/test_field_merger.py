import pytest

from trajectplan.services.reconciliation.field_merger import filled_field_names, is_filled, merge_fields

A = {"current_job": "Chauffeur", "contract_hours": 32, "notes": "   ", "has_computer": False}
B = {"current_job": "Magazijnmedewerker", "notes": "Op basis van intake", "drivers_license": True}


@pytest.mark.parametrize("value,expected", [
    (None, False), ("", False), ("  \n", False),
    ("x", True), (0, True), (False, True), (True, True),
])
def test_is_filled(value, expected):
    assert is_filled(value) is expected


def test_higher_priority_filled_value_wins():
    merged = merge_fields([A, B])
    assert merged["current_job"] == "Chauffeur"
    assert merged["contract_hours"] == 32
    assert merged["has_computer"] is False


def test_blank_higher_priority_value_does_not_block_lower_source():
    assert merge_fields([A, B])["notes"] == "Op basis van intake"


def test_fields_only_in_lower_source_are_included():
    assert merge_fields([A, B])["drivers_license"] is True


def test_fields_filled_nowhere_are_omitted():
    merged = merge_fields([{"a": None, "b": " "}, {"a": ""}])
    assert merged == {}


def test_merge_is_idempotent_for_repeated_source():
    assert merge_fields([A, B]) == merge_fields([A, B, B])


def test_single_source_yields_its_filled_fields():
    assert merge_fields([A]) == {"current_job": "Chauffeur", "contract_hours": 32, "has_computer": False}


def test_none_sources_are_skipped():
    assert merge_fields([None, B, None]) == merge_fields([B])


def test_inputs_are_not_mutated():
    a_copy, b_copy = dict(A), dict(B)
    merge_fields([A, B])
    assert A == a_copy and B == b_copy


def test_filled_field_names_keeps_order():
    assert filled_field_names({"b": "x", "a": "", "c": 0}) == ["b", "c"]
