"""Bet models: question catalogue, lifecycle, settlement payloads."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class OutcomeType(str, Enum):
    options = "options"  # finite list of string answers
    number = "number"    # any integer
    range = "range"      # integer within [range_min, range_max]


class BetStatus(str, Enum):
    open = "open"
    closed = "closed"      # no new stakes; still settleable
    resolved = "resolved"


class BetInDB(BaseModel):
    """A question users can stake points on."""
    model_config = {"use_enum_values": True}

    question: str
    outcome_type: OutcomeType
    options: Optional[list[str]] = None
    range_min: Optional[int] = None
    range_max: Optional[int] = None
    icon: str = "Users"
    pool: int = 0
    status: BetStatus = BetStatus.open
    winning_outcome: Optional[Union[int, str]] = None
    resolved_at: Optional[datetime] = None
    total_paid: Optional[int] = None
    payout_leakage: Optional[int] = None  # pool points lost to floor rounding
    winner_count: Optional[int] = None
    refunded: Optional[bool] = None
    created_by: Optional[str] = None
    created_at: datetime


class BetCreate(BaseModel):
    """Request body for creating a bet (admin)."""
    question: str = Field(..., min_length=10)
    outcome_type: OutcomeType
    options: Optional[list[str]] = None
    range_min: Optional[int] = None
    range_max: Optional[int] = None
    icon: str = Field("Users", min_length=2)


class BetResponse(BaseModel):
    id: str
    question: str
    outcome_type: str
    options: Optional[list[str]] = None
    range_min: Optional[int] = None
    range_max: Optional[int] = None
    icon: str
    pool: int
    status: str
    winning_outcome: Optional[Union[int, str]] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime


class SettleRequest(BaseModel):
    """Request body for settling a bet (admin)."""
    winning_outcome: Union[int, str]


class CascadeReportResponse(BaseModel):
    still_open: list[str]
    won: list[str]
    lost: list[str]
    skipped: list[str]
    failed: list[str]
    error: Optional[str] = None


class SettlementResponse(BaseModel):
    bet_id: str
    winning_outcome: Union[int, str]
    pool: int
    total_paid: int
    payout_leakage: int
    winner_count: int
    refunded: bool
    parlays: CascadeReportResponse
