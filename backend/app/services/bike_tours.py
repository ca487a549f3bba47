"""
Bike tour plans service
"""
import logging
from typing import Callable, List, Optional, Sequence

from app.core.firebase import Collections
from app.schemas.content import BikeTourPlan, duration_days
from app.services.base import FeaturedContentService, Payload

logger = logging.getLogger(__name__)


class BikeToursService(FeaturedContentService[BikeTourPlan]):
    collection = Collections.BIKE_TOURS
    model = BikeTourPlan

    def subscribe_to_bike_tours(self, callback: Callable[[List[BikeTourPlan]], None]) -> Callable[[], None]:
        return self.subscribe(callback)

    def subscribe_to_featured_tours(self, callback: Callable[[List[BikeTourPlan]], None]) -> Callable[[], None]:
        return self.subscribe_featured(callback)

    async def get_all_bike_tours(self, use_cache: bool = True) -> List[BikeTourPlan]:
        return await self.get_all(use_cache=use_cache)

    async def get_bike_tour(self, tour_id: str) -> Optional[BikeTourPlan]:
        return await self.get(tour_id)

    async def add_bike_tour(self, tour: Payload) -> str:
        return await self.add(tour)

    async def update_bike_tour(self, tour_id: str, updates: Payload) -> None:
        await self.update(tour_id, updates)

    async def delete_bike_tour(self, tour_id: str) -> None:
        await self.delete(tour_id)

    async def search_bike_tours(self, term: str) -> List[BikeTourPlan]:
        """Case-insensitive match on title, description or any highlight"""
        needle = term.strip().lower()
        tours = await self.get_all()
        if not needle:
            return tours
        return [
            tour for tour in tours
            if needle in tour.title.lower()
            or needle in (tour.description or '').lower()
            or any(needle in highlight.lower() for highlight in tour.highlights)
        ]

    async def get_tours_by_price_range(self, min_price: float, max_price: float) -> List[BikeTourPlan]:
        tours = await self.get_all()
        return [tour for tour in tours if min_price <= tour.price <= max_price]

    async def get_tours_by_duration(self, min_days: int, max_days: int) -> List[BikeTourPlan]:
        tours = await self.get_all()
        matches = []
        for tour in tours:
            days = duration_days(tour.duration)
            if days is not None and min_days <= days <= max_days:
                matches.append(tour)
        return matches

    async def initialize_default_tours(self, defaults: Sequence[Payload]) -> List[str]:
        """Seed the collection with defaults when it is empty"""
        if not await self.is_empty():
            logger.info("Bike tours already exist in Firestore")
            return []
        logger.info(f"Initializing {len(defaults)} default bike tours...")
        return await self.bulk_create(defaults)
