"""Parlay models: multi-leg fixed-multiplier wagers."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class ParlayStatus(str, Enum):
    open = "open"
    won = "won"
    lost = "lost"


class LegResult(str, Enum):
    won = "won"
    lost = "lost"


class ParlayLeg(BaseModel):
    bet_id: str
    outcome: Union[int, str]
    question: str = ""  # snapshot for display


class ParlayInDB(BaseModel):
    """A bundle of legs that pays potential_payout only if every leg wins."""
    model_config = {"use_enum_values": True}

    user_id: str
    nickname: str
    stake: int
    legs: list[ParlayLeg]
    multiplier: float
    potential_payout: int
    leg_results: dict[str, LegResult] = {}
    status: ParlayStatus = ParlayStatus.open
    payout: Optional[int] = None
    version: int = 0
    created_at: datetime
    resolved_at: Optional[datetime] = None


class ParlayLegCreate(BaseModel):
    bet_id: str
    outcome: Union[int, str]


class ParlayCreate(BaseModel):
    """Request body for placing a parlay."""
    legs: list[ParlayLegCreate]
    stake: int = Field(..., gt=0)


class ParlayQuote(BaseModel):
    leg_count: int
    multiplier: float
    stake: int
    potential_payout: int


class ParlayResponse(BaseModel):
    id: str
    legs: list[ParlayLeg]
    stake: int
    multiplier: float
    potential_payout: int
    leg_results: dict[str, str]
    status: str
    payout: Optional[int] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None
