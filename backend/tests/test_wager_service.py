"""
backend/tests/test_wager_service.py

Purpose:
    Single-wager placement, editing and cancellation against the in-memory
    ledger store.
"""

from __future__ import annotations

import asyncio

import pytest
from pymongo.errors import PyMongoError

from fake_mongo import add_bet, add_user
from wedding_wager.errors import (
    BetAlreadyResolved,
    BetNotFound,
    BetNotOpen,
    DuplicateWager,
    InsufficientBalance,
    InvalidRequest,
    StoreUnavailable,
    WagerNotFound,
)
from wedding_wager.models.user import TransactionType
from wedding_wager.services import wager_service


def _open_stakes(db, bet_id):
    return sum(
        w["amount"] for w in db.wagers.docs
        if w["bet_id"] == bet_id and w["status"] == "open"
    )


@pytest.mark.asyncio
async def test_place_wager_moves_points_into_pool(fake_db):
    add_user(fake_db, "u1", balance=500)
    add_bet(fake_db, "b1")

    wager = await wager_service.place_wager("u1", "b1", "Yes", 200)

    assert wager["_id"] == "b1:u1"
    assert wager["status"] == "open"
    assert fake_db.users.get("u1")["balance"] == 300
    assert fake_db.bets.get("b1")["pool"] == 200
    [row] = fake_db.balance_transactions.docs
    assert row["type"] == TransactionType.WAGER_PLACED.value
    assert row["reference_id"] == "b1:u1"


@pytest.mark.asyncio
async def test_insufficient_balance_changes_nothing(fake_db):
    add_user(fake_db, "u1", balance=50)
    add_bet(fake_db, "b1")

    with pytest.raises(InsufficientBalance):
        await wager_service.place_wager("u1", "b1", "Yes", 100)

    assert fake_db.users.get("u1")["balance"] == 50
    assert fake_db.bets.get("b1")["pool"] == 0
    assert fake_db.wagers.docs == []
    assert fake_db.balance_transactions.docs == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error",
    [("closed", BetNotOpen), ("resolved", BetAlreadyResolved)],
)
async def test_rejects_bets_not_accepting_stakes(fake_db, status, error):
    add_user(fake_db, "u1")
    add_bet(fake_db, "b1", status=status)

    with pytest.raises(error):
        await wager_service.place_wager("u1", "b1", "Yes", 10)
    assert fake_db.users.get("u1")["balance"] == 1000


@pytest.mark.asyncio
async def test_unknown_bet(fake_db):
    add_user(fake_db, "u1")
    with pytest.raises(BetNotFound):
        await wager_service.place_wager("u1", "nope", "Yes", 10)


@pytest.mark.asyncio
async def test_outcome_outside_bet_options(fake_db):
    add_user(fake_db, "u1")
    add_bet(fake_db, "b1")

    with pytest.raises(InvalidRequest):
        await wager_service.place_wager("u1", "b1", "Maybe", 10)
    assert fake_db.bets.get("b1")["pool"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, 1.5, True, "10"])
async def test_invalid_stakes_are_rejected_before_any_write(fake_db, amount):
    add_user(fake_db, "u1")
    add_bet(fake_db, "b1")

    with pytest.raises(InvalidRequest):
        await wager_service.place_wager("u1", "b1", "Yes", amount)
    assert fake_db.wagers.docs == []


@pytest.mark.asyncio
async def test_second_wager_on_same_bet_is_rejected(fake_db):
    add_user(fake_db, "u1")
    add_bet(fake_db, "b1")
    await wager_service.place_wager("u1", "b1", "Yes", 10)

    with pytest.raises(DuplicateWager):
        await wager_service.place_wager("u1", "b1", "No", 10)
    assert fake_db.users.get("u1")["balance"] == 990
    assert fake_db.bets.get("b1")["pool"] == 10


@pytest.mark.asyncio
async def test_number_bet_stores_typed_outcome(fake_db):
    add_user(fake_db, "u1")
    add_bet(fake_db, "b1", outcome_type="number")

    wager = await wager_service.place_wager("u1", "b1", "7", 10)
    assert wager["outcome"] == 7


@pytest.mark.asyncio
async def test_raising_stake_debits_difference(fake_db):
    add_user(fake_db, "u1", balance=100)
    add_bet(fake_db, "b1")
    await wager_service.place_wager("u1", "b1", "Yes", 40)

    wager = await wager_service.update_wager("u1", "b1", "No", 70)

    assert wager["amount"] == 70
    assert wager["outcome"] == "No"
    assert fake_db.users.get("u1")["balance"] == 30
    assert fake_db.bets.get("b1")["pool"] == 70
    assert fake_db.balance_transactions.docs[-1]["type"] == TransactionType.WAGER_ADJUSTED.value


@pytest.mark.asyncio
async def test_lowering_stake_credits_difference(fake_db):
    add_user(fake_db, "u1", balance=100)
    add_bet(fake_db, "b1")
    await wager_service.place_wager("u1", "b1", "Yes", 40)

    await wager_service.update_wager("u1", "b1", "Yes", 15)

    assert fake_db.users.get("u1")["balance"] == 85
    assert fake_db.bets.get("b1")["pool"] == 15


@pytest.mark.asyncio
async def test_raise_beyond_balance_leaves_wager_untouched(fake_db):
    add_user(fake_db, "u1", balance=100)
    add_bet(fake_db, "b1")
    await wager_service.place_wager("u1", "b1", "Yes", 40)

    with pytest.raises(InsufficientBalance):
        await wager_service.update_wager("u1", "b1", "No", 200)

    wager = fake_db.wagers.get("b1:u1")
    assert (wager["amount"], wager["outcome"]) == (40, "Yes")
    assert fake_db.users.get("u1")["balance"] == 60
    assert fake_db.bets.get("b1")["pool"] == 40


@pytest.mark.asyncio
async def test_cancel_refunds_and_frees_the_slot(fake_db):
    add_user(fake_db, "u1", balance=100)
    add_bet(fake_db, "b1")
    await wager_service.place_wager("u1", "b1", "Yes", 40)

    cancelled = await wager_service.cancel_wager("u1", "b1")
    assert cancelled["status"] == "cancelled"
    assert fake_db.users.get("u1")["balance"] == 100
    assert fake_db.bets.get("b1")["pool"] == 0

    with pytest.raises(WagerNotFound):
        await wager_service.cancel_wager("u1", "b1")

    again = await wager_service.place_wager("u1", "b1", "No", 25)
    assert again["status"] == "open"
    assert fake_db.wagers.get("b1:u1")["amount"] == 25
    assert len(fake_db.wagers.docs) == 1
    assert await wager_service.get_bet_wagers("b1") == [fake_db.wagers.get("b1:u1")]


@pytest.mark.asyncio
async def test_store_failure_rolls_back_debit(fake_db):
    add_user(fake_db, "u1", balance=100)
    add_bet(fake_db, "b1")
    fake_db.bets.inject("update_one", PyMongoError("primary stepped down"))

    with pytest.raises(StoreUnavailable):
        await wager_service.place_wager("u1", "b1", "Yes", 40)

    assert fake_db.users.get("u1")["balance"] == 100
    assert fake_db.balance_transactions.docs == []
    assert fake_db.wagers.docs == []


@pytest.mark.asyncio
async def test_pool_matches_open_stakes_under_concurrency(fake_db):
    add_bet(fake_db, "b1")
    for i in range(6):
        add_user(fake_db, f"u{i}", balance=100)

    await asyncio.gather(*(
        wager_service.place_wager(f"u{i}", "b1", "Yes" if i % 2 else "No", 10 * (i + 1))
        for i in range(6)
    ))
    await wager_service.cancel_wager("u2", "b1")
    await wager_service.update_wager("u3", "b1", "No", 5)

    assert fake_db.bets.get("b1")["pool"] == _open_stakes(fake_db, "b1")
    assert fake_db.bets.get("b1")["pool"] == 10 + 20 + 5 + 50 + 60
