"""Single wager endpoints: place, edit, cancel, list own."""

from fastapi import APIRouter, Depends, status

from wedding_wager.models.wager import WagerCreate, WagerResponse, WagerUpdate
from wedding_wager.services import wager_service
from wedding_wager.services.auth_service import get_current_user
from wedding_wager.utils import as_utc

router = APIRouter(prefix="/api/wagers", tags=["wagers"])


def wager_response(wager: dict) -> WagerResponse:
    return WagerResponse(
        id=str(wager["_id"]),
        bet_id=wager["bet_id"],
        nickname=wager.get("nickname", ""),
        amount=wager["amount"],
        outcome=wager["outcome"],
        status=wager["status"],
        payout=wager.get("payout"),
        created_at=as_utc(wager["created_at"]),
        updated_at=as_utc(wager.get("updated_at")),
        settled_at=as_utc(wager.get("settled_at")),
    )


@router.post("", response_model=WagerResponse, status_code=status.HTTP_201_CREATED)
async def place_wager(body: WagerCreate, user=Depends(get_current_user)):
    """Stake points on one outcome of an open bet."""
    wager = await wager_service.place_wager(
        str(user["_id"]), body.bet_id, body.outcome, body.amount,
    )
    return wager_response(wager)


@router.get("/me", response_model=list[WagerResponse])
async def my_wagers(user=Depends(get_current_user)):
    wagers = await wager_service.get_user_wagers(str(user["_id"]))
    return [wager_response(w) for w in wagers]


@router.put("/{bet_id}", response_model=WagerResponse)
async def update_wager(bet_id: str, body: WagerUpdate, user=Depends(get_current_user)):
    """Change outcome and/or stake while the bet is still open."""
    wager = await wager_service.update_wager(
        str(user["_id"]), bet_id, body.outcome, body.amount,
    )
    return wager_response(wager)


@router.delete("/{bet_id}", response_model=WagerResponse)
async def cancel_wager(bet_id: str, user=Depends(get_current_user)):
    """Withdraw a wager; the stake goes back to the balance."""
    wager = await wager_service.cancel_wager(str(user["_id"]), bet_id)
    return wager_response(wager)
