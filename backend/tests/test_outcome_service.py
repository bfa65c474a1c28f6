"""
backend/tests/test_outcome_service.py

Purpose:
    Outcome validation and canonical comparison.
"""

from __future__ import annotations

import pytest

from wedding_wager.errors import InvalidRequest
from wedding_wager.services.outcome_service import outcome_key, outcomes_match, parse_outcome

OPTIONS_BET = {"outcome_type": "options", "options": ["Yes", "No"]}
NUMBER_BET = {"outcome_type": "number"}
RANGE_BET = {"outcome_type": "range", "range_min": 1, "range_max": 10}


def test_numeric_forms_compare_equal():
    assert outcome_key(5) == outcome_key(5.0) == outcome_key("5") == outcome_key(" 5 ")
    assert outcomes_match(12, "12.0")


def test_string_comparison_is_case_sensitive():
    assert not outcomes_match("Yes", "yes")
    assert outcomes_match("Yes", "Yes")


def test_booleans_are_not_numbers():
    assert not outcomes_match(True, 1)


def test_parse_options_returns_the_option():
    assert parse_outcome(OPTIONS_BET, "No") == "No"


def test_parse_options_rejects_unknown_answer():
    with pytest.raises(InvalidRequest):
        parse_outcome(OPTIONS_BET, "Maybe")


def test_parse_options_matches_numeric_labels():
    bet = {"outcome_type": "options", "options": ["1", "2", "3+"]}
    assert parse_outcome(bet, 2) == "2"


def test_parse_number_accepts_integral_strings():
    assert parse_outcome(NUMBER_BET, "12") == 12
    assert parse_outcome(NUMBER_BET, 7.0) == 7


@pytest.mark.parametrize("raw", [2.5, "two", None, True])
def test_parse_number_rejects_non_integers(raw):
    with pytest.raises(InvalidRequest):
        parse_outcome(NUMBER_BET, raw)


def test_parse_range_bounds_are_inclusive():
    assert parse_outcome(RANGE_BET, 1) == 1
    assert parse_outcome(RANGE_BET, 10) == 10
    with pytest.raises(InvalidRequest):
        parse_outcome(RANGE_BET, 11)
    with pytest.raises(InvalidRequest):
        parse_outcome(RANGE_BET, 0)
