"""
Worker: Seed Default Content
Loads the default bike tours and trip plans into Firestore when those
collections are empty. Collections that already hold documents are left alone.

Usage:
    python3 -m app.workers.seed_content [--dry-run]
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict

from app.core.config import configure_logging, settings
from app.core.firebase import create_firestore_client
from app.core.monitoring import acquire_lock, track_job, validate_environment
from app.services.container import Services, build_services
from app.services.data import build_data_layer_from_settings

logger = logging.getLogger(__name__)

JOB_NAME = "seed_content"

DEFAULT_BIKE_TOURS = [
    {
        "title": "5-Day Himalayan Circuit Ride",
        "duration": "5 Days",
        "price": 10500,
        "highlights": ["Leh", "Sangam", "Khardungla Pass", "Nubra Valley", "Pangong Lake", "Changla Pass"],
        "isFeatured": True,
        "itinerary": [
            {"day": 1, "title": "Leh to Sangam",
             "description": "Magnetic Hill, Hall of Fame and the Indus-Zanskar confluence at Sangam. "
                            "Overnight in Leh."},
            {"day": 2, "title": "Leh to Khardungla Pass and Nubra Valley",
             "description": "Ride over Khardungla Pass (18,380 ft) into Nubra Valley. "
                            "Diskit Monastery and Hunder dunes."},
            {"day": 3, "title": "Nubra Valley to Pangong Lake",
             "description": "Through Shyok Valley to Pangong Lake. Night at a lakeside camp."},
            {"day": 4, "title": "Pangong to Leh via Changla Pass",
             "description": "Back to Leh over Changla Pass, Thiksey or Hemis en route."},
            {"day": 5, "title": "Local Leh Exploration / Departure",
             "description": "Shanti Stupa, Leh Palace and the local markets before departure."},
        ],
    },
    {
        "title": "10-Day Grand Himalayan Expedition",
        "duration": "10 Days",
        "price": 21500,
        "highlights": [
            "Leh", "Sangam", "Khardungla Pass", "Tso Moriri", "Nubra Valley",
            "Turktuk", "Pangong Lake", "Changla Pass", "Hanle", "Umling La Pass",
        ],
        "isFeatured": True,
        "itinerary": [
            {"day": 1, "title": "Arrival & Acclimatization in Leh",
             "description": "Rest to acclimatize. Evening walk to Shanti Stupa and Leh Market."},
            {"day": 2, "title": "Leh to Sangam and Back",
             "description": "Short ride to Magnetic Hill, Gurudwara Pathar Sahib and Sangam."},
            {"day": 3, "title": "Leh to Khardungla to Nubra Valley",
             "description": "Cross Khardungla Pass, explore Diskit and stay in Hunder."},
            {"day": 4, "title": "Nubra to Turktuk",
             "description": "Remote Balti village of Turktuk near the border."},
            {"day": 5, "title": "Turktuk to Pangong Lake",
             "description": "Shyok Valley ride to Pangong Lake for sunset."},
            {"day": 6, "title": "Pangong to Tso Moriri",
             "description": "Through Chushul and Nyoma to the high-altitude Tso Moriri Lake."},
            {"day": 7, "title": "Tso Moriri to Hanle",
             "description": "Across the Changthang Plateau to Hanle and its observatory."},
            {"day": 8, "title": "Hanle to Umling La Pass",
             "description": "Ride Umling La Pass (19,024 ft) and return to Hanle."},
            {"day": 9, "title": "Hanle to Leh",
             "description": "Back to Leh via Nyoma and Chumathang hot springs."},
            {"day": 10, "title": "Leh Local Tour & Departure",
             "description": "Monasteries, Leh Palace or a slow morning before checkout."},
        ],
    },
]

DEFAULT_TRIP_PLANS = [
    {
        "title": "6-Day Ladakh Blitz",
        "route": ["Leh", "Nubra Valley", "Pangong Lake", "Tso Moriri", "Kargil", "Leh"],
        "duration": "6 days",
        "price": 45000,
        "description": "An intense motorcycle journey through Ladakh's most iconic destinations "
                       "for riders short on time.",
        "isFeatured": True,
        "highlights": [
            "Ride through Khardung La",
            "Camp under stars at Pangong Lake",
            "Explore monasteries in Nubra Valley",
        ],
        "difficulty": "Moderate",
        "bestSeason": ["May", "June", "July", "August", "September"],
        "groupSize": {"min": 4, "max": 12},
        "itinerary": [
            {"day": 1, "title": "Arrival & Acclimatization in Leh", "location": "Leh",
             "description": "Rest, Leh Palace and sunset at Shanti Stupa. Trip briefing."},
            {"day": 2, "title": "Leh to Nubra Valley via Khardung La", "location": "Nubra Valley",
             "description": "Cross Khardung La (18,380 ft) into the cold desert of Nubra."},
            {"day": 3, "title": "Nubra Valley to Pangong Lake", "location": "Pangong Lake",
             "description": "Shyok River valley to Pangong Tso. Lakeside camping."},
            {"day": 4, "title": "Pangong Lake to Tso Moriri", "location": "Tso Moriri",
             "description": "Morning photography, then on to the remote Tso Moriri."},
            {"day": 5, "title": "Tso Moriri to Kargil via Sarchu", "location": "Kargil",
             "description": "Long scenic ride across the Sarchu plains to Kargil."},
            {"day": 6, "title": "Kargil to Leh & Departure", "location": "Leh",
             "description": "Back to Leh via Lamayuru. Farewell dinner and airport transfer."},
        ],
    },
]


async def seed_content(services: Services, dry_run: bool = False) -> Dict[str, int]:
    """
    Seed default bike tours and trip plans into empty collections

    Args:
        services: Domain services bound to the target Firestore
        dry_run: If True, only report what would be created

    Returns:
        dict with counts: bike_tours, trip_plans, skipped
    """
    counts = {"bike_tours": 0, "trip_plans": 0, "skipped": 0}

    if dry_run:
        for name, service, defaults in (
            ("bike_tours", services.bike_tours, DEFAULT_BIKE_TOURS),
            ("trip_plans", services.trip_plans, DEFAULT_TRIP_PLANS),
        ):
            if await service.is_empty():
                counts[name] = len(defaults)
                logger.info(f"[DRY RUN] Would create {len(defaults)} {service.collection} document(s)")
            else:
                counts["skipped"] += 1
                logger.info(f"[DRY RUN] {service.collection} already populated, skipping")
        return counts

    tour_ids = await services.bike_tours.initialize_default_tours(DEFAULT_BIKE_TOURS)
    plan_ids = await services.trip_plans.initialize_default_plans(DEFAULT_TRIP_PLANS)

    counts["bike_tours"] = len(tour_ids)
    counts["trip_plans"] = len(plan_ids)
    counts["skipped"] = int(not tour_ids) + int(not plan_ids)

    logger.info(
        f"Seed summary: {counts['bike_tours']} bike tours, {counts['trip_plans']} trip plans, "
        f"{counts['skipped']} collection(s) skipped"
    )
    return counts


def main(argv=None, db=None):
    """Main entry point"""
    configure_logging()

    parser = argparse.ArgumentParser(description="Seed default bike tours and trip plans")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be created without writing"
    )
    args = parser.parse_args(argv)

    logger.info("=" * 60)
    logger.info("SEED CONTENT JOB")
    if args.dry_run:
        logger.info("DRY RUN MODE - No changes will be made")
    logger.info("=" * 60)

    if db is None:
        try:
            validate_environment(settings)
        except EnvironmentError as e:
            logger.error(f"Environment validation failed: {e}")
            return 1
        db = create_firestore_client(settings)

    services = build_services(build_data_layer_from_settings(db, settings))

    try:
        with acquire_lock(JOB_NAME):
            with track_job(db, JOB_NAME) as counts:
                counts.update(asyncio.run(seed_content(services, dry_run=args.dry_run)))

        logger.info("=" * 60)
        logger.info("SEED JOB COMPLETED SUCCESSFULLY")
        logger.info(f"Bike tours created: {counts['bike_tours']}")
        logger.info(f"Trip plans created: {counts['trip_plans']}")
        logger.info("=" * 60)
        return 0

    except KeyboardInterrupt:
        logger.warning("Job interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Job failed: {e}")
        return 1
    finally:
        services.close()


if __name__ == "__main__":
    sys.exit(main())
