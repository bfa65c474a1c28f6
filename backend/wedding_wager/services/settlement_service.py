"""
backend/wedding_wager/services/settlement_service.py

Purpose:
    Single-bet settlement engine. Declares a bet's winning outcome, splits
    the pool pari-mutuel style between the winning wagers, credits balances,
    and then hands the result to the parlay cascade.

    Payouts are floor(stake * pool / winning_stake) in exact integer maths.
    The floor can leave a few points of the pool unpaid; that remainder is
    recorded on the bet as payout_leakage and is not redistributed. When no
    wager picked the winning outcome every stake is refunded.

    Wagers are read inside the settlement transaction, so a placement racing
    the settlement either lands in the pool before it is paid out or is
    rejected because the bet is no longer open.

Dependencies:
    - wedding_wager.database
    - wedding_wager.services.wallet_service
    - wedding_wager.services.parlay_resolution_service
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import PyMongoError

import wedding_wager.database as _db
from wedding_wager.errors import BetAlreadyResolved, StoreUnavailable
from wedding_wager.models.bet import BetStatus
from wedding_wager.models.user import TransactionType
from wedding_wager.models.wager import WagerStatus
from wedding_wager.services import bet_service, wallet_service
from wedding_wager.services.outcome_service import outcome_key, parse_outcome
from wedding_wager.services.parlay_resolution_service import (
    CascadeReport,
    resolve_parlays_for_bet,
)
from wedding_wager.utils import utcnow

logger = logging.getLogger("wedding_wager.settlement_service")

SETTLEABLE_STATUSES = [BetStatus.open.value, BetStatus.closed.value]


@dataclass
class PayoutPlan:
    """Per-wager payouts for one settlement. Order independent."""
    pool: int
    winning_stake: int
    refunded: bool
    payouts: dict[str, int] = field(default_factory=dict)
    statuses: dict[str, str] = field(default_factory=dict)

    @property
    def total_paid(self) -> int:
        return sum(self.payouts.values())

    @property
    def leakage(self) -> int:
        return 0 if self.refunded else self.pool - self.total_paid

    @property
    def winner_count(self) -> int:
        return sum(1 for s in self.statuses.values() if s == WagerStatus.won.value)


@dataclass
class SettlementResult:
    bet_id: str
    winning_outcome: Any
    pool: int
    total_paid: int
    payout_leakage: int
    winner_count: int
    refunded: bool
    parlays: CascadeReport


def plan_payouts(pool: int, wagers: list[dict], winning_outcome: Any) -> PayoutPlan:
    """Pari-mutuel split of ``pool`` across ``wagers``."""
    winning = outcome_key(winning_outcome)
    winners = [w for w in wagers if outcome_key(w["outcome"]) == winning]
    winning_stake = sum(w["amount"] for w in winners)

    if not winners or winning_stake <= 0:
        plan = PayoutPlan(pool=pool, winning_stake=0, refunded=True)
        for wager in wagers:
            plan.payouts[wager["_id"]] = wager["amount"]
            plan.statuses[wager["_id"]] = WagerStatus.refunded.value
        return plan

    plan = PayoutPlan(pool=pool, winning_stake=winning_stake, refunded=False)
    winner_ids = {w["_id"] for w in winners}
    for wager in wagers:
        if wager["_id"] in winner_ids:
            plan.payouts[wager["_id"]] = wager["amount"] * pool // winning_stake
            plan.statuses[wager["_id"]] = WagerStatus.won.value
        else:
            plan.payouts[wager["_id"]] = 0
            plan.statuses[wager["_id"]] = WagerStatus.lost.value
    return plan


async def settle_bet(bet_id: str, winning_outcome: Any) -> SettlementResult:
    """Resolve a bet once, pay its wagers, then cascade into parlays.

    A second call for the same bet raises BetAlreadyResolved and changes
    nothing.
    """

    async def _settle(session) -> tuple[Any, PayoutPlan]:
        bet = await bet_service.get_bet(bet_id, session=session)
        if bet["status"] == BetStatus.resolved.value:
            raise BetAlreadyResolved()
        winning = parse_outcome(bet, winning_outcome)

        wagers = await _db.db.wagers.find(
            {"bet_id": bet_id, "status": WagerStatus.open.value}, session=session,
        ).to_list(length=None)
        staked = sum(w["amount"] for w in wagers)
        if staked != bet["pool"]:
            logger.warning(
                "Pool mismatch on bet %s: pool=%d open stakes=%d",
                bet_id, bet["pool"], staked,
            )

        plan = plan_payouts(bet["pool"], wagers, winning)
        now = utcnow()

        result = await _db.db.bets.update_one(
            {"_id": bet_id, "status": {"$in": SETTLEABLE_STATUSES}},
            {"$set": {
                "status": BetStatus.resolved.value,
                "winning_outcome": winning,
                "resolved_at": now,
                "total_paid": plan.total_paid,
                "payout_leakage": plan.leakage,
                "winner_count": plan.winner_count,
                "refunded": plan.refunded,
            }},
            session=session,
        )
        if result.matched_count == 0:
            raise BetAlreadyResolved()

        for wager in wagers:
            payout = plan.payouts[wager["_id"]]
            await _db.db.wagers.update_one(
                {"_id": wager["_id"], "status": WagerStatus.open.value},
                {"$set": {
                    "status": plan.statuses[wager["_id"]],
                    "payout": payout,
                    "settled_at": now,
                    "updated_at": now,
                }},
                session=session,
            )
            if payout <= 0:
                continue
            if plan.refunded:
                tx_type = TransactionType.WAGER_REFUNDED
                description = f"Refund on '{bet['question']}' (no winners, {payout} points)"
            else:
                tx_type = TransactionType.WAGER_WON
                description = f"Win on '{bet['question']}': {winning} ({payout} points)"
            await wallet_service.credit(
                wager["user_id"], payout,
                session=session,
                tx_type=tx_type,
                reference_type="wager",
                reference_id=wager["_id"],
                description=description,
            )

        return winning, plan

    winning, plan = await _db.run_transaction(_settle)

    logger.info(
        "Bet settled: bet=%s outcome=%s pool=%d paid=%d winners=%d refunded=%s",
        bet_id, winning, plan.pool, plan.total_paid, plan.winner_count, plan.refunded,
    )
    if plan.leakage:
        logger.info("Bet %s: %d points of the pool lost to rounding", bet_id, plan.leakage)

    try:
        cascade = await resolve_parlays_for_bet(bet_id, winning)
    except (StoreUnavailable, PyMongoError) as exc:
        # Settlement is committed; the reconciler worker resolves the parlays later.
        logger.exception("Parlay cascade lookup failed for bet %s", bet_id)
        cascade = CascadeReport(bet_id=bet_id, error=str(exc))

    return SettlementResult(
        bet_id=bet_id,
        winning_outcome=winning,
        pool=plan.pool,
        total_paid=plan.total_paid,
        payout_leakage=plan.leakage,
        winner_count=plan.winner_count,
        refunded=plan.refunded,
        parlays=cascade,
    )
