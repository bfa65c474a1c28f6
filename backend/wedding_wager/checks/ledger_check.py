"""
backend/wedding_wager/checks/ledger_check.py

Purpose:
    Read-only consistency check of the points ledger. Verifies that every
    open bet's pool equals the stakes of its open wagers, that every balance
    equals the sum of its balance log, and counts parlay legs the cascade
    has not applied yet (the reconciler picks those up).

Dependencies:
    - wedding_wager.database
"""

import logging
import traceback
from collections import defaultdict

import wedding_wager.database as _db
from wedding_wager.models.bet import BetStatus
from wedding_wager.models.parlay import ParlayStatus
from wedding_wager.models.wager import WagerStatus

logger = logging.getLogger("wedding_wager.ledger_check")


class LedgerHealthCheck:

    @staticmethod
    async def run() -> dict:
        report: dict = {
            "status": "UNKNOWN",
            "steps": {
                "database": "PENDING",
                "pools": "PENDING",
                "balances": "PENDING",
                "parlays": "PENDING",
            },
            "details": {},
            "error": None,
        }

        try:
            if _db.db is None:
                raise RuntimeError("Database is not initialized. Call connect_db() first.")
            await _db.db.command("ping")
            report["steps"]["database"] = "OK"

            pool_mismatches = await LedgerHealthCheck._check_pools()
            report["steps"]["pools"] = "FAILED" if pool_mismatches else "OK"
            report["details"]["pool_mismatches"] = pool_mismatches

            balance_mismatches = await LedgerHealthCheck._check_balances()
            report["steps"]["balances"] = "FAILED" if balance_mismatches else "OK"
            report["details"]["balance_mismatches"] = balance_mismatches

            pending_legs = await LedgerHealthCheck._count_pending_legs()
            report["steps"]["parlays"] = "PENDING_LEGS" if pending_legs else "OK"
            report["details"]["pending_parlay_legs"] = pending_legs

            report["status"] = "DEGRADED" if pool_mismatches or balance_mismatches else "HEALTHY"

        except Exception as e:
            report["status"] = "CRITICAL"
            report["error"] = str(e)
            report["traceback"] = traceback.format_exc()
            logger.error("Ledger check failed: %s", e, exc_info=True)

        return report

    @staticmethod
    async def _check_pools() -> list[dict]:
        bets = await _db.db.bets.find(
            {"status": {"$in": [BetStatus.open.value, BetStatus.closed.value]}},
        ).to_list(length=None)
        wagers = await _db.db.wagers.find(
            {"status": WagerStatus.open.value},
        ).to_list(length=None)

        staked: dict[str, int] = defaultdict(int)
        for wager in wagers:
            staked[wager["bet_id"]] += wager["amount"]

        return [
            {"bet_id": bet["_id"], "pool": bet["pool"], "open_stakes": staked[bet["_id"]]}
            for bet in bets
            if bet["pool"] != staked[bet["_id"]]
        ]

    @staticmethod
    async def _check_balances() -> list[dict]:
        users = await _db.db.users.find({}).to_list(length=None)
        rows = await _db.db.balance_transactions.find({}).to_list(length=None)

        logged: dict[str, int] = defaultdict(int)
        for row in rows:
            logged[row["user_id"]] += row["amount"]

        return [
            {"user_id": user["_id"], "balance": user["balance"], "logged": logged[user["_id"]]}
            for user in users
            if user["balance"] != logged[user["_id"]]
        ]

    @staticmethod
    async def _count_pending_legs() -> int:
        parlays = await _db.db.parlays.find(
            {"status": ParlayStatus.open.value},
        ).to_list(length=None)
        leg_ids = {leg["bet_id"] for p in parlays for leg in p["legs"]}
        if not leg_ids:
            return 0
        resolved = await _db.db.bets.find(
            {"_id": {"$in": sorted(leg_ids)}, "status": BetStatus.resolved.value},
        ).to_list(length=None)
        resolved_ids = {b["_id"] for b in resolved}
        return sum(
            1
            for p in parlays
            for leg in p["legs"]
            if leg["bet_id"] in resolved_ids and leg["bet_id"] not in (p.get("leg_results") or {})
        )
