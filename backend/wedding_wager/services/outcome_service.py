"""
backend/wedding_wager/services/outcome_service.py

Purpose:
    Validation and canonical comparison of bet outcomes.

    Every equality check between a chosen outcome and a declared winning
    outcome (single wagers and parlay legs alike) goes through outcome_key(),
    so 5, 5.0 and "5" are the same answer and "Yes" is never equal to "yes".

Dependencies:
    - wedding_wager.models.bet
"""

from typing import Any

from wedding_wager.errors import InvalidRequest
from wedding_wager.models.bet import OutcomeType


def outcome_key(value: Any) -> str:
    """Canonical string form of an outcome for equality comparison."""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        numeric = _as_int(value)
        if numeric is not None:
            return str(numeric)
    return str(value)


def outcomes_match(chosen: Any, winning: Any) -> bool:
    return outcome_key(chosen) == outcome_key(winning)


def parse_outcome(bet: dict, raw: Any) -> int | str:
    """Validate ``raw`` against the bet's outcome space and return its typed form.

    options -> the matching option string
    number  -> int
    range   -> int within [range_min, range_max]
    """
    outcome_type = bet.get("outcome_type")

    if outcome_type == OutcomeType.options.value:
        options = bet.get("options") or []
        if isinstance(raw, str) and raw in options:
            return raw
        key = outcome_key(raw)
        for option in options:
            if outcome_key(option) == key:
                return option
        raise InvalidRequest(f"'{raw}' is not one of the options for this bet.")

    if outcome_type in (OutcomeType.number.value, OutcomeType.range.value):
        value = _as_int(raw)
        if value is None:
            raise InvalidRequest("This bet needs a whole number as its answer.")
        if outcome_type == OutcomeType.range.value:
            lo, hi = bet.get("range_min"), bet.get("range_max")
            if value < lo or value > hi:
                raise InvalidRequest(f"Answer must be between {lo} and {hi}.")
        return value

    raise InvalidRequest(f"Unknown outcome type '{outcome_type}'.")


def _as_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None
