"""
backend/wedding_wager/services/wager_service.py

Purpose:
    Single-wager placement, editing and cancellation. Each operation is one
    ledger transaction touching the user's balance, the bet's pool and the
    wager record, so a rejection leaves all three unchanged.

    Wager ids are derived from (bet, user): one active wager per user per bet,
    and a blindly retried placement hits DuplicateWager instead of staking
    twice.

Dependencies:
    - wedding_wager.database
    - wedding_wager.services.bet_service
    - wedding_wager.services.wallet_service
    - wedding_wager.services.outcome_service
"""

import logging
from typing import Any

from pymongo.errors import DuplicateKeyError

import wedding_wager.database as _db
from wedding_wager.errors import DuplicateWager, InvalidRequest, WagerNotFound
from wedding_wager.models.user import TransactionType
from wedding_wager.models.wager import WagerInDB, WagerStatus
from wedding_wager.services import bet_service, wallet_service
from wedding_wager.services.outcome_service import parse_outcome
from wedding_wager.utils import utcnow

logger = logging.getLogger("wedding_wager.wager_service")


def wager_id_for(bet_id: str, user_id: str) -> str:
    return f"{bet_id}:{user_id}"


def validate_stake(amount: Any) -> int:
    """Reject non-integer or non-positive stakes before touching the store."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidRequest("Stake must be a whole number of points.")
    if amount <= 0:
        raise InvalidRequest("Stake must be greater than zero.")
    return amount


async def place_wager(user_id: str, bet_id: str, outcome: Any, amount: int) -> dict:
    """Stake ``amount`` points on ``outcome``. Returns the wager document."""
    validate_stake(amount)
    wager_id = wager_id_for(bet_id, user_id)

    async def _place(session) -> dict:
        bet = await bet_service.get_open_bet(bet_id, session=session)
        chosen = parse_outcome(bet, outcome)

        existing = await _db.db.wagers.find_one({"_id": wager_id}, session=session)
        if existing and existing["status"] != WagerStatus.cancelled.value:
            raise DuplicateWager()

        user = await wallet_service.debit(
            user_id, amount,
            session=session,
            tx_type=TransactionType.WAGER_PLACED,
            reference_type="wager",
            reference_id=wager_id,
            description=f"Wager on '{bet['question']}': {chosen} ({amount} points)",
        )
        await bet_service.adjust_pool(bet_id, amount, session=session)

        now = utcnow()
        wager = WagerInDB(
            user_id=user_id,
            nickname=user.get("nickname", ""),
            bet_id=bet_id,
            amount=amount,
            outcome=chosen,
            created_at=now,
            updated_at=now,
        ).model_dump()

        if existing:
            # Reuse a cancelled wager slot.
            await _db.db.wagers.update_one(
                {"_id": wager_id, "status": WagerStatus.cancelled.value},
                {"$set": wager},
                session=session,
            )
        else:
            try:
                await _db.db.wagers.insert_one({"_id": wager_id, **wager}, session=session)
            except DuplicateKeyError:
                raise DuplicateWager()
        wager["_id"] = wager_id
        return wager

    wager = await _db.run_transaction(_place)
    logger.info(
        "Wager placed: user=%s bet=%s outcome=%s amount=%d",
        user_id, bet_id, wager["outcome"], amount,
    )
    return wager


async def update_wager(user_id: str, bet_id: str, outcome: Any, amount: int) -> dict:
    """Change the outcome and/or stake of an open wager.

    Only the difference to the previous stake moves between balance and pool;
    a raise is re-validated against the current balance.
    """
    validate_stake(amount)
    wager_id = wager_id_for(bet_id, user_id)

    async def _update(session) -> dict:
        bet = await bet_service.get_open_bet(bet_id, session=session)
        chosen = parse_outcome(bet, outcome)
        wager = await _get_open_wager(wager_id, session=session)

        delta = amount - wager["amount"]
        description = (
            f"Wager edit on '{bet['question']}': {wager['amount']} -> {amount} points"
        )
        if delta > 0:
            await wallet_service.debit(
                user_id, delta,
                session=session,
                tx_type=TransactionType.WAGER_ADJUSTED,
                reference_type="wager",
                reference_id=wager_id,
                description=description,
            )
        elif delta < 0:
            await wallet_service.credit(
                user_id, -delta,
                session=session,
                tx_type=TransactionType.WAGER_ADJUSTED,
                reference_type="wager",
                reference_id=wager_id,
                description=description,
            )
        await bet_service.adjust_pool(bet_id, delta, session=session)

        changes = {"amount": amount, "outcome": chosen, "updated_at": utcnow()}
        await _db.db.wagers.update_one(
            {"_id": wager_id, "status": WagerStatus.open.value},
            {"$set": changes},
            session=session,
        )
        return {**wager, **changes}

    wager = await _db.run_transaction(_update)
    logger.info(
        "Wager updated: user=%s bet=%s outcome=%s amount=%d",
        user_id, bet_id, wager["outcome"], amount,
    )
    return wager


async def cancel_wager(user_id: str, bet_id: str) -> dict:
    """Withdraw an open wager: stake back to the balance, out of the pool."""
    wager_id = wager_id_for(bet_id, user_id)

    async def _cancel(session) -> dict:
        bet = await bet_service.get_open_bet(bet_id, session=session)
        wager = await _get_open_wager(wager_id, session=session)

        await wallet_service.credit(
            user_id, wager["amount"],
            session=session,
            tx_type=TransactionType.WAGER_CANCELLED,
            reference_type="wager",
            reference_id=wager_id,
            description=f"Wager cancelled on '{bet['question']}' ({wager['amount']} points)",
        )
        await bet_service.adjust_pool(bet_id, -wager["amount"], session=session)

        now = utcnow()
        changes = {
            "status": WagerStatus.cancelled.value,
            "cancelled_at": now,
            "updated_at": now,
        }
        await _db.db.wagers.update_one(
            {"_id": wager_id, "status": WagerStatus.open.value},
            {"$set": changes},
            session=session,
        )
        return {**wager, **changes}

    wager = await _db.run_transaction(_cancel)
    logger.info("Wager cancelled: user=%s bet=%s refund=%d", user_id, bet_id, wager["amount"])
    return wager


async def get_user_wagers(user_id: str) -> list[dict]:
    return await _db.db.wagers.find(
        {"user_id": user_id},
    ).sort("created_at", -1).to_list(length=1000)


async def get_bet_wagers(bet_id: str) -> list[dict]:
    """Non-cancelled wagers on a bet."""
    return await _db.db.wagers.find(
        {"bet_id": bet_id, "status": {"$ne": WagerStatus.cancelled.value}},
    ).sort("created_at", 1).to_list(length=5000)


async def _get_open_wager(wager_id: str, session) -> dict:
    wager = await _db.db.wagers.find_one(
        {"_id": wager_id, "status": WagerStatus.open.value}, session=session,
    )
    if not wager:
        raise WagerNotFound()
    return wager
