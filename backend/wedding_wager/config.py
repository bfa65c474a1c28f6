"""
backend/wedding_wager/config.py

Purpose:
    Central settings loading for the wagering backend.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    # Transactions need a replica set (or sharded cluster).
    MONGO_URI: str = "mongodb://localhost:27017/?replicaSet=rs0"
    MONGO_DB: str = "wedding_wager"
    AUTH_JWT_SECRET: str
    AUTH_JWT_SECRET_OLD: str = ""  # Set during rotation; cleared once old tokens expire
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Accounts
    STARTING_BALANCE: int = 1000

    # Ledger transactions
    TRANSACTION_MAX_ATTEMPTS: int = 5

    # Parlays
    PARLAY_MIN_LEGS: int = 2
    PARLAY_MAX_LEGS: int = 20
    PARLAY_MULTIPLIER_POLICY: Literal["step", "exponential"] = "step"
    PARLAY_RECONCILER_ENABLED: bool = True
    PARLAY_RECONCILER_INTERVAL_MINUTES: int = 10

    # Seeding (leave empty / False to skip)
    SEED_INITIAL_BETS: bool = False
    SEED_ADMIN_USER_IDS: str = ""  # comma-separated auth uids promoted to admin

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
