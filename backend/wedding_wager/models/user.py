"""User account and balance log models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserInDB(BaseModel):
    """_id is the auth provider's uid."""
    model_config = {"use_enum_values": True}

    nickname: str
    balance: int = 1000
    is_admin: bool = False
    created_at: datetime
    last_active_at: datetime


class UserResponse(BaseModel):
    id: str
    nickname: str
    balance: int
    is_admin: bool


# ---------- Balance Transactions ----------

class TransactionType(str, Enum):
    INITIAL_CREDIT = "INITIAL_CREDIT"
    WAGER_PLACED = "WAGER_PLACED"
    WAGER_ADJUSTED = "WAGER_ADJUSTED"
    WAGER_CANCELLED = "WAGER_CANCELLED"
    WAGER_WON = "WAGER_WON"
    WAGER_REFUNDED = "WAGER_REFUNDED"
    PARLAY_PLACED = "PARLAY_PLACED"
    PARLAY_WON = "PARLAY_WON"


class BalanceTransactionInDB(BaseModel):
    """Immutable audit trail for every point movement."""
    model_config = {"use_enum_values": True}

    user_id: str
    type: TransactionType
    amount: int  # positive = credit, negative = debit
    balance_after: int
    reference_type: Optional[str] = None  # "wager" | "parlay" | None
    reference_id: Optional[str] = None
    description: str
    created_at: datetime


class TransactionResponse(BaseModel):
    id: str
    type: str
    amount: int
    balance_after: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    description: str
    created_at: datetime
