"""
Seed script for the valley weather stations.

This script populates the database with the personal weather stations used
for ground truth and inversion detection, then marks the primary station.

Run this script after running database migrations:
    python -m scripts.seed_stations
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path to import valleywx modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from valleywx import crud
from valleywx.database import async_session, engine
from valleywx.schemas.weather import StationCreate
from valleywx.utils.logging_config import setup_logging, get_logger

# Setup logging
setup_logging()
logger = get_logger(__name__)

PRIMARY_STATION = "IWANDI23"

VALLEY_STATIONS = [
    {
        "code": "IWANDI23",
        "name": "Wandiligong (Primary)",
        "latitude": -36.794,
        "longitude": 146.977,
        "elevation": 386,
        "elevation_tier": "valley_floor",
    },
    {
        "code": "IWANDI25",
        "name": "Wandiligong (Shade)",
        "latitude": -36.794,
        "longitude": 146.977,
        "elevation": 386,
        "elevation_tier": "valley_floor",
    },
    {
        "code": "IBRIGH180",
        "name": "Bright",
        "latitude": -36.729,
        "longitude": 146.968,
        "elevation": 313,
        "elevation_tier": "valley_floor",
    },
    {
        "code": "IVICTORI162",
        "name": "Wandiligong",
        "latitude": -36.757,
        "longitude": 146.986,
        "elevation": 392,
        "elevation_tier": "valley_floor",
        "active": False,
    },
    {
        "code": "IHARRI19",
        "name": "Harrietville",
        "latitude": -36.9,
        "longitude": 147.053,
        "elevation": 543,
        "elevation_tier": "upper",
    },
]


async def seed_stations():
    """Create missing stations and set the primary."""
    logger.info("=" * 60)
    logger.info("Starting valley station seeding process")
    logger.info("=" * 60)

    async with async_session() as session:
        try:
            created = 0
            for station_data in VALLEY_STATIONS:
                existing = await crud.station.get_by_code(session, code=station_data["code"])
                if existing:
                    logger.info(f"Station {station_data['code']} already exists, skipping...")
                    continue

                await crud.station.create(session, obj_in=StationCreate(**station_data))
                created += 1
                logger.info(f"✓ Created station: {station_data['name']} ({station_data['code']})")

            primary = await crud.station.set_primary(session, code=PRIMARY_STATION)
            logger.info("=" * 60)
            logger.info("✓ Seeding completed successfully!")
            logger.info(f"  Stations created: {created}")
            logger.info(f"  Primary station: {primary.code}")
            logger.info("=" * 60)

        except Exception as e:
            await session.rollback()
            logger.error(f"✗ Error during seeding: {e}")
            raise
        finally:
            await engine.dispose()


def main():
    """Main entry point for the seed script."""
    try:
        asyncio.run(seed_stations())
    except KeyboardInterrupt:
        logger.warning("Seeding interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"✗ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
