"""Admin endpoints: manage the bet catalogue and trigger settlement."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from wedding_wager.models.bet import BetCreate, BetResponse, SettleRequest, SettlementResponse
from wedding_wager.routers.bets import bet_response
from wedding_wager.services import bet_service, settlement_service
from wedding_wager.services.auth_service import get_admin_user
from wedding_wager.workers.parlay_reconciler import resolve_pending_parlays

logger = logging.getLogger("wedding_wager.admin")

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/bets", response_model=BetResponse, status_code=status.HTTP_201_CREATED)
async def create_bet(body: BetCreate, admin=Depends(get_admin_user)):
    bet = await bet_service.create_bet(
        body.question,
        body.outcome_type.value,
        options=body.options,
        range_min=body.range_min,
        range_max=body.range_max,
        icon=body.icon,
        created_by=str(admin["_id"]),
    )
    return bet_response(bet)


@router.post("/bets/{bet_id}/close", response_model=BetResponse)
async def close_bet(bet_id: str, admin=Depends(get_admin_user)):
    """Stop accepting wagers. The bet can still be settled afterwards."""
    bet = await bet_service.close_bet(bet_id)
    logger.info("Admin %s closed bet %s", admin["_id"], bet_id)
    return bet_response(bet)


@router.post("/bets/{bet_id}/settle", response_model=SettlementResponse)
async def settle_bet(bet_id: str, body: SettleRequest, admin=Depends(get_admin_user)):
    """Declare the winning outcome, pay out the pool and resolve parlays."""
    logger.info("Admin %s settling bet %s with %r", admin["_id"], bet_id, body.winning_outcome)
    result = await settlement_service.settle_bet(bet_id, body.winning_outcome)
    return SettlementResponse(**asdict(result))


@router.post("/parlays/reconcile")
async def reconcile_parlays(admin=Depends(get_admin_user)):
    """Run the parlay reconciler now instead of waiting for the scheduler."""
    return await resolve_pending_parlays(force=True)
