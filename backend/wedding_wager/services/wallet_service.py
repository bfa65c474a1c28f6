"""User balances: atomic point debits/credits with an append-only log.

Every function that moves points takes the caller's transaction session, so
the balance change and its log row commit (or abort) together with the
wager/bet/parlay writes of the same operation.
"""

import logging
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import wedding_wager.database as _db
from wedding_wager.config import settings
from wedding_wager.errors import InsufficientBalance, InvalidRequest, UserNotFound
from wedding_wager.models.user import BalanceTransactionInDB, TransactionType, UserInDB
from wedding_wager.utils import utcnow

logger = logging.getLogger("wedding_wager.wallet_service")


async def get_or_create_user(user_id: str, nickname: str) -> dict:
    """Get an existing account or create one with the starting balance."""
    now = utcnow()
    user = await _db.db.users.find_one_and_update(
        {"_id": user_id},
        {"$set": {"last_active_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    if user:
        return user

    async def _create(session) -> dict:
        doc = UserInDB(
            nickname=nickname or "New Player",
            balance=settings.STARTING_BALANCE,
            created_at=now,
            last_active_at=now,
        ).model_dump()
        doc["_id"] = user_id
        await _db.db.users.insert_one(doc, session=session)
        await _log_transaction(
            user_id=user_id,
            tx_type=TransactionType.INITIAL_CREDIT,
            amount=doc["balance"],
            balance_after=doc["balance"],
            description="Starting balance",
            session=session,
        )
        return doc

    try:
        user = await _db.run_transaction(_create)
    except DuplicateKeyError:
        # Concurrent first request created it.
        return await get_user(user_id)

    logger.info("Account created: user=%s balance=%d", user_id, user["balance"])
    return user


async def get_user(user_id: str, session=None) -> dict:
    user = await _db.db.users.find_one({"_id": user_id}, session=session)
    if not user:
        raise UserNotFound()
    return user


async def debit(
    user_id: str, amount: int, *, session,
    tx_type: TransactionType, description: str,
    reference_type: Optional[str] = None, reference_id: Optional[str] = None,
) -> dict:
    """Atomically take ``amount`` points. Returns the updated user.

    The balance >= amount filter guard makes overdraft impossible even
    without the surrounding transaction.
    """
    _check_amount(amount)
    user = await _db.db.users.find_one_and_update(
        {"_id": user_id, "balance": {"$gte": amount}},
        {"$inc": {"balance": -amount}},
        return_document=ReturnDocument.AFTER,
        session=session,
    )
    if not user:
        await get_user(user_id, session=session)  # raises UserNotFound
        raise InsufficientBalance()

    await _log_transaction(
        user_id=user_id,
        tx_type=tx_type,
        amount=-amount,
        balance_after=user["balance"],
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        session=session,
    )
    return user


async def credit(
    user_id: str, amount: int, *, session,
    tx_type: TransactionType, description: str,
    reference_type: Optional[str] = None, reference_id: Optional[str] = None,
) -> dict:
    """Atomically add ``amount`` points. Returns the updated user."""
    _check_amount(amount)
    user = await _db.db.users.find_one_and_update(
        {"_id": user_id},
        {"$inc": {"balance": amount}},
        return_document=ReturnDocument.AFTER,
        session=session,
    )
    if not user:
        raise UserNotFound(f"User {user_id} not found for credit.")

    await _log_transaction(
        user_id=user_id,
        tx_type=tx_type,
        amount=amount,
        balance_after=user["balance"],
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        session=session,
    )
    return user


async def get_transactions(user_id: str, limit: int = 50, skip: int = 0) -> list[dict]:
    """Get balance history for a user, newest first."""
    return await _db.db.balance_transactions.find(
        {"user_id": user_id},
    ).sort("created_at", -1).skip(skip).limit(limit).to_list(length=limit)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidRequest("Point amounts must be positive whole numbers.")


async def _log_transaction(
    user_id: str, tx_type: TransactionType, amount: int, balance_after: int,
    description: str, session=None, reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> None:
    """Insert an immutable balance transaction record."""
    row = BalanceTransactionInDB(
        user_id=user_id,
        type=tx_type,
        amount=amount,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        created_at=utcnow(),
    )
    await _db.db.balance_transactions.insert_one(row.model_dump(), session=session)
