from fastapi import APIRouter, Depends, Query

from wedding_wager.models.user import TransactionResponse, UserResponse
from wedding_wager.services import wallet_service
from wedding_wager.services.auth_service import get_current_user
from wedding_wager.utils import as_utc

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/me", response_model=UserResponse)
async def get_me(user=Depends(get_current_user)):
    """Profile and current balance. First call creates the account."""
    return UserResponse(
        id=str(user["_id"]),
        nickname=user.get("nickname", ""),
        balance=user["balance"],
        is_admin=user.get("is_admin", False),
    )


@router.get("/me/transactions", response_model=list[TransactionResponse])
async def get_my_transactions(
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    user=Depends(get_current_user),
):
    """Balance log, newest first."""
    txs = await wallet_service.get_transactions(str(user["_id"]), limit=limit, skip=skip)
    return [
        TransactionResponse(
            id=str(tx["_id"]),
            type=tx["type"],
            amount=tx["amount"],
            balance_after=tx["balance_after"],
            reference_type=tx.get("reference_type"),
            reference_id=tx.get("reference_id"),
            description=tx["description"],
            created_at=as_utc(tx["created_at"]),
        )
        for tx in txs
    ]
