import logging

import wedding_wager.database as _db
from wedding_wager.config import settings
from wedding_wager.models.bet import OutcomeType
from wedding_wager.services import bet_service

logger = logging.getLogger("wedding_wager.seed")

INITIAL_BETS = [
    {
        "question": "Will Michelle wear a veil?",
        "options": ["Yes", "No"],
        "icon": "Users",
    },
    {
        "question": (
            "Will the ceremony be longer than 30 minutes "
            "(including the processional and recessional)"
        ),
        "options": ["Yes", "No"],
        "icon": "Clock",
    },
    {
        "question": "Will Adam cry during the ceremony?",
        "options": ["Yes", "No"],
        "icon": "Mic",
    },
]


async def seed_admin_users() -> int:
    """Promote the configured auth uids to admin. Accounts must already exist."""
    user_ids = [u.strip() for u in settings.SEED_ADMIN_USER_IDS.split(",") if u.strip()]
    if not user_ids:
        logger.debug("SEED_ADMIN_USER_IDS not set, skipping admin seed")
        return 0

    result = await _db.db.users.update_many(
        {"_id": {"$in": user_ids}, "is_admin": {"$ne": True}},
        {"$set": {"is_admin": True}},
    )
    if result.modified_count:
        logger.info("Promoted %d user(s) to admin", result.modified_count)
    return result.modified_count


async def seed_initial_bets() -> int:
    """Create the starter wedding questions when no bets exist yet."""
    if not settings.SEED_INITIAL_BETS:
        logger.debug("SEED_INITIAL_BETS disabled, skipping bet seed")
        return 0

    existing = await _db.db.bets.count_documents({})
    if existing:
        logger.info("Bet seed skipped (existing bets=%d)", existing)
        return 0

    for entry in INITIAL_BETS:
        await bet_service.create_bet(
            entry["question"],
            OutcomeType.options.value,
            options=entry["options"],
            icon=entry["icon"],
            created_by="seed",
        )
    logger.info("Seeded %d initial bets", len(INITIAL_BETS))
    return len(INITIAL_BETS)
