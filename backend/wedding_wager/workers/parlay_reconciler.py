"""
backend/wedding_wager/workers/parlay_reconciler.py

Purpose:
    Catch-up sweep for parlays. Settlement cascades into parlays right after
    a bet resolves; if one of those per-parlay steps failed, the parlay is
    left open with a resolved bet missing from its leg_results. This worker
    finds such legs and applies them through the same resolver.

Dependencies:
    - wedding_wager.database
    - wedding_wager.services.parlay_resolution_service
"""

import logging
from datetime import timedelta

import wedding_wager.database as _db
from wedding_wager.models.bet import BetStatus
from wedding_wager.models.parlay import ParlayStatus
from wedding_wager.services.parlay_resolution_service import (
    LOST,
    SKIPPED,
    WON,
    resolve_parlay_leg,
)
from wedding_wager.workers._state import recently_synced, set_synced

logger = logging.getLogger("wedding_wager.parlay_reconciler")

STATE_KEY = "parlay_reconciler"


async def resolve_pending_parlays(force: bool = False) -> dict:
    """Apply resolved bets that open parlays have not yet recorded.

    Smart sleep: skips if it ran recently and no parlay is open, unless forced.
    """
    summary = {"parlays_checked": 0, "legs_applied": 0, WON: 0, LOST: 0, "failed": 0}

    if not force and await recently_synced(STATE_KEY, timedelta(hours=6)):
        has_open = await _db.db.parlays.find_one({"status": ParlayStatus.open.value})
        if not has_open:
            logger.debug("Smart sleep: no open parlays")
            return summary

    open_parlays = await _db.db.parlays.find(
        {"status": ParlayStatus.open.value}
    ).to_list(length=5000)
    summary["parlays_checked"] = len(open_parlays)

    pending_bet_ids = {
        leg["bet_id"]
        for parlay in open_parlays
        for leg in parlay["legs"]
        if leg["bet_id"] not in (parlay.get("leg_results") or {})
    }
    winning = {}
    if pending_bet_ids:
        resolved = await _db.db.bets.find(
            {"_id": {"$in": sorted(pending_bet_ids)}, "status": BetStatus.resolved.value}
        ).to_list(length=None)
        winning = {bet["_id"]: bet["winning_outcome"] for bet in resolved}

    for parlay in open_parlays:
        for leg in parlay["legs"]:
            bet_id = leg["bet_id"]
            if bet_id not in winning or bet_id in (parlay.get("leg_results") or {}):
                continue
            try:
                outcome = await resolve_parlay_leg(parlay["_id"], bet_id, winning[bet_id])
            except Exception:
                logger.exception("Reconcile failed: parlay=%s bet=%s", parlay["_id"], bet_id)
                summary["failed"] += 1
                break
            if outcome == SKIPPED:
                continue
            summary["legs_applied"] += 1
            if outcome in (WON, LOST):
                summary[outcome] += 1
                break

    if summary["legs_applied"] or summary["failed"]:
        logger.info(
            "Reconciled parlays: %d legs applied, %d won, %d lost, %d failed",
            summary["legs_applied"], summary[WON], summary[LOST], summary["failed"],
        )
    await set_synced(STATE_KEY)
    return summary
