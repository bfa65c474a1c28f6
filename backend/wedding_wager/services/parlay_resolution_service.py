"""
backend/wedding_wager/services/parlay_resolution_service.py

Purpose:
    Parlay cascade: applies one settled bet to every open parlay holding it as
    a leg. Each parlay is resolved in its own transaction, so one failure
    never rolls back the others.

    A parlay loses on its first losing leg and wins only once every leg has a
    recorded win. The per-parlay write is guarded on the document's version
    counter: when two legs of the same parlay settle at the same time, the
    slower transaction hits a WriteConflict, is retried, and sees the other
    leg's result. A bet id already present in leg_results is a no-op.

Dependencies:
    - wedding_wager.database
    - wedding_wager.services.wallet_service
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import wedding_wager.database as _db
from wedding_wager.errors import NotFound, WriteConflict
from wedding_wager.models.parlay import LegResult, ParlayStatus
from wedding_wager.models.user import TransactionType
from wedding_wager.services import wallet_service
from wedding_wager.services.outcome_service import outcomes_match
from wedding_wager.utils import utcnow

logger = logging.getLogger("wedding_wager.parlay_resolution")

STILL_OPEN = "still_open"
WON = "won"
LOST = "lost"
SKIPPED = "skipped"


@dataclass
class CascadeReport:
    bet_id: str
    still_open: list[str] = field(default_factory=list)
    won: list[str] = field(default_factory=list)
    lost: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def record(self, parlay_id: str, outcome: str) -> None:
        getattr(self, outcome).append(parlay_id)


async def resolve_parlays_for_bet(bet_id: str, winning_outcome: Any) -> CascadeReport:
    """Apply a settled bet to all open parlays that include it."""
    report = CascadeReport(bet_id=bet_id)
    parlays = await _db.db.parlays.find(
        {"status": ParlayStatus.open.value, "legs.bet_id": bet_id},
    ).to_list(length=None)

    for parlay in parlays:
        parlay_id = parlay["_id"]
        try:
            outcome = await resolve_parlay_leg(parlay_id, bet_id, winning_outcome)
        except Exception:
            logger.exception("Parlay %s: failed to apply bet %s", parlay_id, bet_id)
            report.failed.append(parlay_id)
            continue
        report.record(parlay_id, outcome)

    if parlays:
        logger.info(
            "Parlay cascade for bet %s: %d won, %d lost, %d open, %d skipped, %d failed",
            bet_id, len(report.won), len(report.lost), len(report.still_open),
            len(report.skipped), len(report.failed),
        )
    return report


async def resolve_parlay_leg(parlay_id: str, bet_id: str, winning_outcome: Any) -> str:
    """Record one leg's result on one parlay. Returns the resulting state.

    still_open: leg won, other legs unresolved
    won:        last leg won, payout credited
    lost:       this leg (or an earlier one) lost
    skipped:    parlay already terminal, or this bet already applied
    """

    async def _resolve(session) -> tuple[str, dict]:
        parlay = await _db.db.parlays.find_one({"_id": parlay_id}, session=session)
        if not parlay:
            raise NotFound(f"Parlay {parlay_id} not found.")

        leg_results = dict(parlay.get("leg_results") or {})
        if parlay["status"] != ParlayStatus.open.value or bet_id in leg_results:
            return SKIPPED, parlay
        leg = next((l for l in parlay["legs"] if l["bet_id"] == bet_id), None)
        if leg is None:
            return SKIPPED, parlay

        result = LegResult.won if outcomes_match(leg["outcome"], winning_outcome) else LegResult.lost
        leg_results[bet_id] = result.value
        now = utcnow()
        changes = {f"leg_results.{bet_id}": result.value}

        if result == LegResult.lost:
            outcome = LOST
        elif all(l["bet_id"] in leg_results for l in parlay["legs"]):
            all_won = all(r == LegResult.won.value for r in leg_results.values())
            outcome = WON if all_won else LOST
        else:
            outcome = STILL_OPEN

        if outcome == WON:
            changes.update(status=ParlayStatus.won.value, payout=parlay["potential_payout"], resolved_at=now)
        elif outcome == LOST:
            changes.update(status=ParlayStatus.lost.value, payout=0, resolved_at=now)

        write = await _db.db.parlays.update_one(
            {
                "_id": parlay_id,
                "status": ParlayStatus.open.value,
                "version": parlay.get("version", 0),
            },
            {"$set": changes, "$inc": {"version": 1}},
            session=session,
        )
        if write.matched_count == 0:
            raise WriteConflict(f"Parlay {parlay_id} changed concurrently")

        if outcome == WON:
            await wallet_service.credit(
                parlay["user_id"], parlay["potential_payout"],
                session=session,
                tx_type=TransactionType.PARLAY_WON,
                reference_type="parlay",
                reference_id=parlay_id,
                description=(
                    f"Parlay win: {len(parlay['legs'])} legs at {parlay['multiplier']:g}x "
                    f"({parlay['potential_payout']} points)"
                ),
            )
        return outcome, parlay

    outcome, parlay = await _db.run_transaction(_resolve)
    if outcome in (WON, LOST):
        logger.info(
            "Parlay resolved: parlay=%s user=%s status=%s leg=%s",
            parlay_id, parlay["user_id"], outcome, bet_id,
        )
    return outcome
