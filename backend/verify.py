"""
backend/verify.py

Purpose:
    CLI entrypoint for the ledger consistency check.

Dependencies:
    - wedding_wager.database
    - wedding_wager.checks.ledger_check
"""

import asyncio
import os
import sys
from pprint import pprint

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from wedding_wager.checks.ledger_check import LedgerHealthCheck
from wedding_wager.database import close_db, connect_db


async def main() -> int:
    print("\nSTARTING WEDDING WAGER LEDGER CHECK")
    print("=" * 50)

    try:
        await connect_db()
        report = await LedgerHealthCheck.run()

        print("\n--- REPORT ---")
        pprint(report, indent=2)
        print("-" * 50)

        if report.get("status") == "HEALTHY":
            print("\nLEDGER GREEN: pools and balances reconcile.")
            if report["details"].get("pending_parlay_legs"):
                print("Some parlay legs are waiting for the reconciler.")
            return 0

        print(f"\nLEDGER RED: Status is {report.get('status')}")
        print("Check the mismatches above.")
        return 1
    except Exception as e:
        print(f"FATAL ERROR: {e}")
        return 1
    finally:
        await close_db()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
