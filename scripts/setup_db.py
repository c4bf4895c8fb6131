#!/usr/bin/env python3
"""Database setup script for the travel booking API: migrations plus sample packages."""

import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from travel_booking.core.database import async_session_factory, close_db
from travel_booking.core.security import hash_password
from travel_booking.models import PackageCategory, TravelPackage, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_PACKAGES = [
    {
        "title": "Northern Lights Adventure",
        "description": "Experience the magical Aurora Borealis in Iceland with expert guides",
        "price": Decimal("1299.99"),
        "duration": "5 days",
        "destination": "Reykjavik, Iceland",
        "category": PackageCategory.ADVENTURE,
        "availability": 12,
    },
    {
        "title": "Amalfi Coast Escape",
        "description": "Cliffside villages, lemon groves and sunset dinners by the sea",
        "price": Decimal("2149.00"),
        "duration": "7 days",
        "destination": "Positano, Italy",
        "category": PackageCategory.ROMANTIC,
        "availability": 8,
    },
    {
        "title": "Kyoto Temples and Tea",
        "description": "Guided walks through historic temples with a traditional tea ceremony",
        "price": Decimal("1780.50"),
        "duration": "6 days",
        "destination": "Kyoto, Japan",
        "category": PackageCategory.CULTURAL,
        "availability": 15,
    },
    {
        "title": "Costa Rica Family Rainforest",
        "description": "Zip lines, wildlife spotting and beach days for all ages",
        "price": Decimal("3200.00"),
        "duration": "10 days",
        "destination": "Arenal, Costa Rica",
        "category": PackageCategory.FAMILY,
        "availability": 4,
    },
]


def run_migrations() -> None:
    """Bring the schema to the latest Alembic revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Insert sample packages and an admin account unless packages already exist."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = await db.execute(select(func.count()).select_from(TravelPackage))
            if existing.scalar_one() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            for data in SAMPLE_PACKAGES:
                db.add(TravelPackage(**{**data, "category": data["category"].value}))

            db.add(
                User(
                    username="admin",
                    email="admin@example.com",
                    password_hash=hash_password("change-me"),
                    is_admin=True,
                )
            )

            await db.commit()
            logger.info(f"Created {len(SAMPLE_PACKAGES)} sample packages and the admin account")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


async def seed() -> None:
    try:
        await create_sample_data()
    finally:
        await close_db()


def main() -> None:
    """Main setup function."""
    logger.info("Starting travel booking API setup...")

    # env.py runs its own event loop, so migrations go first
    run_migrations()
    asyncio.run(seed())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn travel_booking.main:app --reload")


if __name__ == "__main__":
    main()
