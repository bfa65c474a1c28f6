"""Bet catalogue endpoints: list questions and inspect their pools."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from wedding_wager.models.bet import BetResponse, BetStatus
from wedding_wager.models.wager import WagerResponse
from wedding_wager.routers.wagers import wager_response
from wedding_wager.services import bet_service, wager_service
from wedding_wager.services.auth_service import get_current_user
from wedding_wager.utils import as_utc

router = APIRouter(prefix="/api/bets", tags=["bets"])


def bet_response(bet: dict) -> BetResponse:
    return BetResponse(
        id=str(bet["_id"]),
        question=bet["question"],
        outcome_type=bet["outcome_type"],
        options=bet.get("options"),
        range_min=bet.get("range_min"),
        range_max=bet.get("range_max"),
        icon=bet.get("icon", "Users"),
        pool=bet.get("pool", 0),
        status=bet["status"],
        winning_outcome=bet.get("winning_outcome"),
        resolved_at=as_utc(bet.get("resolved_at")),
        created_at=as_utc(bet["created_at"]),
    )


@router.get("", response_model=list[BetResponse])
async def list_bets(status: Optional[BetStatus] = Query(None)):
    """All bets, newest first."""
    bets = await bet_service.list_bets(status.value if status else None)
    return [bet_response(b) for b in bets]


@router.get("/{bet_id}", response_model=BetResponse)
async def get_bet(bet_id: str):
    return bet_response(await bet_service.get_bet(bet_id))


@router.get("/{bet_id}/wagers", response_model=list[WagerResponse])
async def get_bet_wagers(bet_id: str, user=Depends(get_current_user)):
    """Live (non-cancelled) wagers on a bet, oldest first."""
    await bet_service.get_bet(bet_id)
    wagers = await wager_service.get_bet_wagers(bet_id)
    return [wager_response(w) for w in wagers]
