"""Parlay endpoints: place multi-leg slips, preview multipliers."""

from fastapi import APIRouter, Depends, Query, status

from wedding_wager.errors import NotFound
from wedding_wager.models.parlay import ParlayCreate, ParlayQuote, ParlayResponse
from wedding_wager.services import parlay_service
from wedding_wager.services.auth_service import get_current_user
from wedding_wager.utils import as_utc

router = APIRouter(prefix="/api/parlays", tags=["parlays"])


def parlay_response(parlay: dict) -> ParlayResponse:
    return ParlayResponse(
        id=str(parlay["_id"]),
        legs=parlay["legs"],
        stake=parlay["stake"],
        multiplier=parlay["multiplier"],
        potential_payout=parlay["potential_payout"],
        leg_results=parlay.get("leg_results") or {},
        status=parlay["status"],
        payout=parlay.get("payout"),
        created_at=as_utc(parlay["created_at"]),
        resolved_at=as_utc(parlay.get("resolved_at")),
    )


@router.post("", response_model=ParlayResponse, status_code=status.HTTP_201_CREATED)
async def place_parlay(body: ParlayCreate, user=Depends(get_current_user)):
    parlay = await parlay_service.place_parlay(
        str(user["_id"]),
        [leg.model_dump() for leg in body.legs],
        body.stake,
    )
    return parlay_response(parlay)


@router.get("/quote", response_model=ParlayQuote)
async def quote(
    legs: int = Query(..., ge=1, description="Number of legs on the slip"),
    stake: int = Query(..., gt=0),
):
    """Multiplier and potential payout for a slip, without placing it."""
    return ParlayQuote(**parlay_service.quote_parlay(legs, stake))


@router.get("/me", response_model=list[ParlayResponse])
async def my_parlays(user=Depends(get_current_user)):
    parlays = await parlay_service.get_user_parlays(str(user["_id"]))
    return [parlay_response(p) for p in parlays]


@router.get("/{parlay_id}", response_model=ParlayResponse)
async def get_parlay(parlay_id: str, user=Depends(get_current_user)):
    parlay = await parlay_service.get_parlay(parlay_id)
    if parlay["user_id"] != str(user["_id"]) and not user.get("is_admin"):
        raise NotFound("Parlay not found.")
    return parlay_response(parlay)
