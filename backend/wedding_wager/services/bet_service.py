"""
backend/wedding_wager/services/bet_service.py

Purpose:
    Bet catalogue: creating questions, closing them for new stakes, and read
    access for the placement and settlement services.

Dependencies:
    - wedding_wager.database
    - wedding_wager.models.bet
"""

import logging
from typing import Optional

from bson import ObjectId

import wedding_wager.database as _db
from wedding_wager.errors import BetAlreadyResolved, BetNotFound, BetNotOpen, InvalidRequest
from wedding_wager.models.bet import BetInDB, BetStatus, OutcomeType
from wedding_wager.services.outcome_service import outcome_key
from wedding_wager.utils import utcnow

logger = logging.getLogger("wedding_wager.bet_service")

MIN_QUESTION_LENGTH = 10
MIN_OPTIONS = 2


async def create_bet(
    question: str, outcome_type: str, *,
    options: Optional[list[str]] = None,
    range_min: Optional[int] = None,
    range_max: Optional[int] = None,
    icon: str = "Users",
    created_by: Optional[str] = None,
) -> dict:
    """Create an open bet with an empty pool."""
    question = (question or "").strip()
    if len(question) < MIN_QUESTION_LENGTH:
        raise InvalidRequest(f"Question must be at least {MIN_QUESTION_LENGTH} characters.")

    try:
        outcome_type = OutcomeType(outcome_type)
    except ValueError:
        raise InvalidRequest(f"Unknown outcome type '{outcome_type}'.")

    if outcome_type == OutcomeType.options:
        options = [o.strip() for o in (options or [])]
        if len(options) < MIN_OPTIONS:
            raise InvalidRequest(f"At least {MIN_OPTIONS} options are required.")
        if any(not o for o in options):
            raise InvalidRequest("Options cannot be empty.")
        # "5", "5.0" and "05" are one answer once compared
        if len({outcome_key(o) for o in options}) != len(options):
            raise InvalidRequest("Options must be distinct.")
        range_min = range_max = None
    elif outcome_type == OutcomeType.range:
        if range_min is None or range_max is None or range_min >= range_max:
            raise InvalidRequest("A range bet needs range_min < range_max.")
        options = None
    else:
        options = range_min = range_max = None

    bet = BetInDB(
        question=question,
        outcome_type=outcome_type,
        options=options,
        range_min=range_min,
        range_max=range_max,
        icon=icon,
        created_by=created_by,
        created_at=utcnow(),
    ).model_dump()
    bet["_id"] = str(ObjectId())
    await _db.db.bets.insert_one(bet)

    logger.info("Bet created: id=%s type=%s by=%s", bet["_id"], outcome_type.value, created_by)
    return bet


async def get_bet(bet_id: str, session=None) -> dict:
    bet = await _db.db.bets.find_one({"_id": bet_id}, session=session)
    if not bet:
        raise BetNotFound()
    return bet


async def get_open_bet(bet_id: str, session=None) -> dict:
    """Fetch a bet that still accepts stakes."""
    bet = await get_bet(bet_id, session=session)
    if bet["status"] == BetStatus.resolved.value:
        raise BetAlreadyResolved()
    if bet["status"] != BetStatus.open.value:
        raise BetNotOpen()
    return bet


async def list_bets(status: Optional[str] = None) -> list[dict]:
    """All bets, newest first."""
    query = {"status": status} if status else {}
    return await _db.db.bets.find(query).sort("created_at", -1).to_list(length=1000)


async def close_bet(bet_id: str) -> dict:
    """Stop accepting stakes. The bet stays settleable."""
    result = await _db.db.bets.update_one(
        {"_id": bet_id, "status": BetStatus.open.value},
        {"$set": {"status": BetStatus.closed.value}},
    )
    if result.matched_count == 0:
        bet = await get_bet(bet_id)
        if bet["status"] == BetStatus.resolved.value:
            raise BetAlreadyResolved()
        raise BetNotOpen("This bet is already closed.")

    logger.info("Bet closed: id=%s", bet_id)
    return await get_bet(bet_id)


async def adjust_pool(bet_id: str, delta: int, *, session) -> None:
    """Move the pool by ``delta`` while the bet is open."""
    if delta == 0:
        return
    result = await _db.db.bets.update_one(
        {"_id": bet_id, "status": BetStatus.open.value},
        {"$inc": {"pool": delta}},
        session=session,
    )
    if result.matched_count == 0:
        raise BetNotOpen()
