"""
backend/wedding_wager/services/parlay_service.py

Purpose:
    Parlay placement: multi-leg wagers paying a fixed multiplier of the stake
    when every leg wins. Parlay stakes are a side structure and never enter
    the underlying bets' pari-mutuel pools.

Dependencies:
    - wedding_wager.database
    - wedding_wager.services.bet_service
    - wedding_wager.services.wallet_service
"""

import logging
import math
from decimal import Decimal
from typing import Callable

from bson import ObjectId

import wedding_wager.database as _db
from wedding_wager.config import settings
from wedding_wager.errors import InvalidRequest, NotFound
from wedding_wager.models.parlay import ParlayInDB, ParlayLeg
from wedding_wager.models.user import TransactionType
from wedding_wager.services import bet_service, wallet_service
from wedding_wager.services.outcome_service import parse_outcome
from wedding_wager.services.wager_service import validate_stake
from wedding_wager.utils import utcnow

logger = logging.getLogger("wedding_wager.parlay_service")

MultiplierPolicy = Callable[[int], float]


# ---------- Multiplier policies ----------

def step_multiplier(leg_count: int) -> float:
    """2 legs 2.5x, 3 legs 5x, 4 legs 10x, 5+ legs 15x."""
    if leg_count < 2:
        raise InvalidRequest("A parlay needs at least 2 legs.")
    return {2: 2.5, 3: 5.0, 4: 10.0}.get(leg_count, 15.0)


def exponential_multiplier(leg_count: int) -> float:
    """2 ** legs."""
    if leg_count < 2:
        raise InvalidRequest("A parlay needs at least 2 legs.")
    return float(2 ** leg_count)


MULTIPLIER_POLICIES: dict[str, MultiplierPolicy] = {
    "step": step_multiplier,
    "exponential": exponential_multiplier,
}


def get_multiplier_policy(name: str | None = None) -> MultiplierPolicy:
    name = name or settings.PARLAY_MULTIPLIER_POLICY
    try:
        return MULTIPLIER_POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown parlay multiplier policy '{name}'")


def potential_payout_for(stake: int, multiplier: float) -> int:
    """floor(stake * multiplier), computed without float drift."""
    return math.floor(Decimal(stake) * Decimal(str(multiplier)))


def check_leg_count(leg_count: int) -> None:
    """Placement and quotes accept the same slip sizes."""
    if leg_count < settings.PARLAY_MIN_LEGS:
        raise InvalidRequest(f"A parlay needs at least {settings.PARLAY_MIN_LEGS} legs.")
    if leg_count > settings.PARLAY_MAX_LEGS:
        raise InvalidRequest(f"A parlay can have at most {settings.PARLAY_MAX_LEGS} legs.")


def quote_parlay(leg_count: int, stake: int, policy: MultiplierPolicy | None = None) -> dict:
    """Multiplier and payout preview for a slip, without placing anything."""
    validate_stake(stake)
    check_leg_count(leg_count)
    multiplier = (policy or get_multiplier_policy())(leg_count)
    return {
        "leg_count": leg_count,
        "multiplier": multiplier,
        "stake": stake,
        "potential_payout": potential_payout_for(stake, multiplier),
    }


# ---------- Placement ----------

async def place_parlay(
    user_id: str, legs: list[dict], stake: int,
    policy: MultiplierPolicy | None = None,
) -> dict:
    """Place a parlay.

    Legs format: [{"bet_id": "...", "outcome": "Yes"}, ...]
    Every referenced bet must be open; each bet may appear only once.
    """
    validate_stake(stake)
    check_leg_count(len(legs))
    bet_ids = [leg["bet_id"] for leg in legs]
    if len(set(bet_ids)) != len(bet_ids):
        raise InvalidRequest("Each bet may only appear once in a parlay.")

    multiplier = (policy or get_multiplier_policy())(len(legs))
    potential_payout = potential_payout_for(stake, multiplier)
    parlay_id = str(ObjectId())

    async def _place(session) -> dict:
        validated_legs = []
        for leg in legs:
            bet = await bet_service.get_open_bet(leg["bet_id"], session=session)
            validated_legs.append(ParlayLeg(
                bet_id=leg["bet_id"],
                outcome=parse_outcome(bet, leg["outcome"]),
                question=bet["question"],
            ))

        user = await wallet_service.debit(
            user_id, stake,
            session=session,
            tx_type=TransactionType.PARLAY_PLACED,
            reference_type="parlay",
            reference_id=parlay_id,
            description=f"Parlay: {len(legs)} legs at {multiplier:g}x ({stake} points)",
        )

        parlay = ParlayInDB(
            user_id=user_id,
            nickname=user.get("nickname", ""),
            stake=stake,
            legs=validated_legs,
            multiplier=multiplier,
            potential_payout=potential_payout,
            created_at=utcnow(),
        ).model_dump()
        parlay["_id"] = parlay_id
        await _db.db.parlays.insert_one(parlay, session=session)
        return parlay

    parlay = await _db.run_transaction(_place)
    logger.info(
        "Parlay placed: user=%s parlay=%s legs=%d stake=%d potential=%d",
        user_id, parlay_id, len(legs), stake, potential_payout,
    )
    return parlay


async def get_parlay(parlay_id: str, session=None) -> dict:
    parlay = await _db.db.parlays.find_one({"_id": parlay_id}, session=session)
    if not parlay:
        raise NotFound("Parlay not found.")
    return parlay


async def get_user_parlays(user_id: str) -> list[dict]:
    return await _db.db.parlays.find(
        {"user_id": user_id},
    ).sort("created_at", -1).to_list(length=1000)