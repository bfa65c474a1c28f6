"""
backend/wedding_wager/database.py

Purpose:
    MongoDB connection bootstrap, index management, and the transaction runner
    every ledger mutation goes through.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - wedding_wager.config
"""

import logging
from typing import Awaitable, Callable, TypeVar

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from wedding_wager.config import settings
from wedding_wager.errors import StoreUnavailable, WriteConflict

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("wedding_wager.database")

T = TypeVar("T")

TRANSIENT_LABEL = "TransientTransactionError"


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def run_transaction(
    callback: Callable[..., Awaitable[T]],
    *,
    max_attempts: int | None = None,
) -> T:
    """Run ``callback(session)`` inside a multi-document transaction.

    The whole callback is re-run on transient conflicts (server-labelled
    TransientTransactionError, or a WriteConflict raised by a guarded write),
    at most ``max_attempts`` times. Domain errors raised by the callback abort
    the transaction and propagate unchanged, as does DuplicateKeyError so
    callers can map it to their own conflict. Any other store failure, or
    running out of attempts, raises StoreUnavailable.
    """
    attempts = max_attempts or settings.TRANSACTION_MAX_ATTEMPTS
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    return await callback(session)
        except DuplicateKeyError:
            raise
        except WriteConflict as exc:
            last_error = exc
        except PyMongoError as exc:
            if not exc.has_error_label(TRANSIENT_LABEL):
                logger.error("Ledger transaction failed: %s", exc)
                raise StoreUnavailable(str(exc)) from exc
            last_error = exc

        logger.warning(
            "Transaction conflict (attempt %d/%d): %s",
            attempt, attempts, last_error,
        )

    raise StoreUnavailable(
        f"Transaction did not commit after {attempts} attempts."
    ) from last_error


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Bets ----

    await db.bets.create_index([("status", 1), ("created_at", -1)])
    await db.bets.create_index("created_at")

    # ---- Wagers ----

    # One wager per user per bet (the _id is also derived from both).
    await db.wagers.create_index([("user_id", 1), ("bet_id", 1)], unique=True)
    await db.wagers.create_index([("bet_id", 1), ("status", 1)])
    await db.wagers.create_index([("user_id", 1), ("created_at", -1)])

    # ---- Parlays ----

    # Cascade lookup: open parlays holding a given bet as a leg
    await db.parlays.create_index([("status", 1), ("legs.bet_id", 1)])
    await db.parlays.create_index([("user_id", 1), ("created_at", -1)])

    # ---- Balance log ----

    await db.balance_transactions.create_index([("user_id", 1), ("created_at", -1)])
    await db.balance_transactions.create_index([("reference_id", 1)], sparse=True)
    await db.balance_transactions.create_index("created_at")
