#!/usr/bin/env python3
"""Initialize database tables and seed referral tiers."""

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from app.config.database import create_engine, create_session_maker  # noqa: E402
from app.models import Base, User  # noqa: E402
from app.repositories.referral_tier_repository import (  # noqa: E402
    ReferralTierRepository,
)
from app.repositories.user_repository import UserRepository  # noqa: E402

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")

DEMO_USERS = [
    {
        "username": "demo_referrer",
        "display_name": "Demo Referrer",
        "email": "referrer@promorang.test",
    },
    {
        "username": "demo_referred",
        "display_name": "Demo Referred",
        "email": "referred@promorang.test",
        "points_balance": Decimal("150"),
        "drops_completed": 1,
    },
]


async def init_database(
    database_url: str | None = None, seed_demo: bool = False
) -> None:
    """
    Create all database tables and seed default tiers.

    Args:
        database_url: Override for settings.database_url
        seed_demo: Also create demo users
    """
    logger.info("Connecting to database...")
    engine = create_engine(database_url)

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(
            Base.metadata.create_all,
            checkfirst=True
        )

    session_maker = create_session_maker(engine)
    async with session_maker() as session:
        created = await ReferralTierRepository(session).seed_defaults()
        logger.info(f"Referral tiers seeded: {created} created")

        if seed_demo:
            user_repo = UserRepository(session)
            for data in DEMO_USERS:
                if await user_repo.get_by_username(data["username"]):
                    continue
                user: User = await user_repo.create(**data)
                logger.info(f"Demo user created: {user.username} (id={user.id})")

        await session.commit()

    await engine.dispose()
    logger.success("Database initialized successfully!")


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (defaults to DATABASE_URL setting)",
    )
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Create demo users for local development",
    )
    args = parser.parse_args()
    asyncio.run(init_database(args.database_url, seed_demo=args.seed_demo))


if __name__ == "__main__":
    main()
