"""Single wager models."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class WagerStatus(str, Enum):
    open = "open"
    won = "won"
    lost = "lost"
    refunded = "refunded"    # settled with no winners, stake returned
    cancelled = "cancelled"  # withdrawn while the bet was open


class WagerInDB(BaseModel):
    """One user's stake on one bet. _id is "{bet_id}:{user_id}"."""
    model_config = {"use_enum_values": True}

    user_id: str
    nickname: str
    bet_id: str
    amount: int
    outcome: Union[int, str]
    status: WagerStatus = WagerStatus.open
    payout: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    settled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class WagerCreate(BaseModel):
    """Request body for placing a wager."""
    bet_id: str
    outcome: Union[int, str]
    amount: int = Field(..., gt=0)


class WagerUpdate(BaseModel):
    """Request body for editing an open wager."""
    outcome: Union[int, str]
    amount: int = Field(..., gt=0)


class WagerResponse(BaseModel):
    id: str
    bet_id: str
    nickname: str
    amount: int
    outcome: Union[int, str]
    status: str
    payout: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
