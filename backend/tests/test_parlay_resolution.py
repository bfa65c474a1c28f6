"""
backend/tests/test_parlay_resolution.py

Purpose:
    Parlay cascade after settlement, concurrent leg resolution, and the
    reconciler worker.
"""

from __future__ import annotations

import asyncio

import pytest
from pymongo.errors import PyMongoError

from fake_mongo import add_bet, add_user
from wedding_wager.models.user import TransactionType
from wedding_wager.services import parlay_service, settlement_service
from wedding_wager.services.parlay_resolution_service import (
    LOST,
    SKIPPED,
    STILL_OPEN,
    WON,
    resolve_parlay_leg,
    resolve_parlays_for_bet,
)
from wedding_wager.workers import parlay_reconciler


def _won_rows(db):
    return [r for r in db.balance_transactions.docs if r["type"] == TransactionType.PARLAY_WON.value]


async def _parlay(db, bet_ids, *, user_id="u1", stake=100, outcome="Yes"):
    if db.users.get(user_id) is None:
        add_user(db, user_id, balance=1000)
    for bet_id in bet_ids:
        if db.bets.get(bet_id) is None:
            add_bet(db, bet_id)
    return await parlay_service.place_parlay(
        user_id, [{"bet_id": b, "outcome": outcome} for b in bet_ids], stake,
    )


@pytest.mark.asyncio
async def test_first_losing_leg_loses_the_parlay(fake_db):
    parlay = await _parlay(fake_db, ["b1", "b2", "b3"])

    first = await settlement_service.settle_bet("b1", "Yes")
    assert first.parlays.still_open == [parlay["_id"]]
    assert fake_db.parlays.get(parlay["_id"])["leg_results"] == {"b1": "won"}

    second = await settlement_service.settle_bet("b2", "No")
    assert second.parlays.lost == [parlay["_id"]]
    stored = fake_db.parlays.get(parlay["_id"])
    assert stored["status"] == "lost"
    assert stored["payout"] == 0

    # b3 no longer finds the parlay; it is already terminal.
    third = await settlement_service.settle_bet("b3", "Yes")
    assert third.parlays.won == [] and third.parlays.still_open == []
    assert _won_rows(fake_db) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("order", [("b1", "b2", "b3"), ("b3", "b1", "b2"), ("b2", "b3", "b1")])
async def test_all_legs_won_pays_once_in_any_order(fake_db, order):
    parlay = await _parlay(fake_db, ["b1", "b2", "b3"], stake=100)
    balance_after_stake = fake_db.users.get("u1")["balance"]

    for bet_id in order:
        await settlement_service.settle_bet(bet_id, "Yes")

    stored = fake_db.parlays.get(parlay["_id"])
    assert stored["status"] == "won"
    assert stored["payout"] == 500
    assert fake_db.users.get("u1")["balance"] == balance_after_stake + 500
    assert len(_won_rows(fake_db)) == 1


@pytest.mark.asyncio
async def test_concurrent_settlement_of_two_legs_credits_once(fake_db):
    parlay = await _parlay(fake_db, ["b1", "b2"], stake=40)
    balance_after_stake = fake_db.users.get("u1")["balance"]

    results = await asyncio.gather(
        settlement_service.settle_bet("b1", "Yes"),
        settlement_service.settle_bet("b2", "Yes"),
    )

    stored = fake_db.parlays.get(parlay["_id"])
    assert stored["status"] == "won"
    assert stored["leg_results"] == {"b1": "won", "b2": "won"}
    assert stored["version"] == 2
    assert len(_won_rows(fake_db)) == 1
    assert fake_db.users.get("u1")["balance"] == balance_after_stake + 100
    outcomes = sorted(
        state for r in results for state in ("won", "still_open") if getattr(r.parlays, state)
    )
    assert outcomes == ["still_open", "won"]


@pytest.mark.asyncio
async def test_reapplying_a_leg_is_a_no_op(fake_db):
    parlay = await _parlay(fake_db, ["b1", "b2"])

    assert await resolve_parlay_leg(parlay["_id"], "b1", "Yes") == STILL_OPEN
    assert await resolve_parlay_leg(parlay["_id"], "b1", "Yes") == SKIPPED
    assert await resolve_parlay_leg(parlay["_id"], "b1", "No") == SKIPPED

    stored = fake_db.parlays.get(parlay["_id"])
    assert stored["leg_results"] == {"b1": "won"}
    assert stored["version"] == 1


@pytest.mark.asyncio
async def test_leg_outcomes_compare_canonically(fake_db):
    add_user(fake_db, "u1")
    add_bet(fake_db, "n1", outcome_type="number")
    add_bet(fake_db, "b2")
    parlay = await parlay_service.place_parlay(
        "u1", [{"bet_id": "n1", "outcome": 5}, {"bet_id": "b2", "outcome": "Yes"}], 10,
    )

    assert await resolve_parlay_leg(parlay["_id"], "n1", "5") == STILL_OPEN
    assert await resolve_parlay_leg(parlay["_id"], "b2", "Yes") == WON


@pytest.mark.asyncio
async def test_one_failing_parlay_does_not_block_the_others(fake_db):
    first = await _parlay(fake_db, ["b1", "b2"], user_id="u1")
    second = await _parlay(fake_db, ["b1", "b2"], user_id="u2")
    fake_db.parlays.inject("find_one", PyMongoError("node down"))

    report = await resolve_parlays_for_bet("b1", "No")

    assert report.failed == [first["_id"]]
    assert report.lost == [second["_id"]]
    assert fake_db.parlays.get(first["_id"])["status"] == "open"


@pytest.mark.asyncio
async def test_reconciler_applies_missed_legs(fake_db):
    parlay = await _parlay(fake_db, ["b1", "b2"], stake=10)
    # Both bets settle while the cascade is failing.
    fake_db.parlays.inject("find", PyMongoError("cursor killed"), times=2)
    await settlement_service.settle_bet("b1", "Yes")
    await settlement_service.settle_bet("b2", "Yes")
    assert fake_db.parlays.get(parlay["_id"])["status"] == "open"

    summary = await parlay_reconciler.resolve_pending_parlays(force=True)

    assert summary["parlays_checked"] == 1
    assert summary["legs_applied"] == 2
    assert summary[WON] == 1
    assert fake_db.parlays.get(parlay["_id"])["status"] == "won"
    assert len(_won_rows(fake_db)) == 1

    again = await parlay_reconciler.resolve_pending_parlays(force=True)
    assert again["legs_applied"] == 0
    assert len(_won_rows(fake_db)) == 1


@pytest.mark.asyncio
async def test_reconciler_leaves_unsettled_legs_alone(fake_db):
    parlay = await _parlay(fake_db, ["b1", "b2"])
    fake_db.parlays.inject("find", PyMongoError("cursor killed"))
    await settlement_service.settle_bet("b1", "No")

    summary = await parlay_reconciler.resolve_pending_parlays(force=True)

    assert summary[LOST] == 1
    stored = fake_db.parlays.get(parlay["_id"])
    assert stored["status"] == "lost"
    assert "b2" not in stored["leg_results"]


@pytest.mark.asyncio
async def test_reconciler_smart_sleep(fake_db):
    await parlay_reconciler.resolve_pending_parlays()
    assert fake_db.worker_state.get(parlay_reconciler.STATE_KEY) is not None

    summary = await parlay_reconciler.resolve_pending_parlays()
    assert summary["parlays_checked"] == 0
