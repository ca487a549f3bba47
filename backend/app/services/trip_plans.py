"""
Trip plans service
"""
import logging
from typing import Callable, List, Optional, Sequence

from app.core.firebase import Collections
from app.schemas.content import TripPlan
from app.services.base import FeaturedContentService, Payload
from app.services.data import OrderBy, Where

logger = logging.getLogger(__name__)


class TripPlansService(FeaturedContentService[TripPlan]):
    collection = Collections.TRIP_PLANS
    model = TripPlan

    def subscribe_to_trip_plans(self, callback: Callable[[List[TripPlan]], None]) -> Callable[[], None]:
        return self.subscribe(callback)

    def subscribe_to_featured_trip_plans(self, callback: Callable[[List[TripPlan]], None]) -> Callable[[], None]:
        return self.subscribe_featured(callback)

    async def get_all_trip_plans(self, use_cache: bool = True) -> List[TripPlan]:
        return await self.get_all(use_cache=use_cache)

    async def get_trip_plan(self, plan_id: str) -> Optional[TripPlan]:
        return await self.get(plan_id)

    async def get_trip_plans_by_difficulty(self, difficulty: str) -> List[TripPlan]:
        return await self.get_all([Where('difficulty', '==', difficulty), OrderBy('createdAt', descending=True)])

    async def add_trip_plan(self, plan: Payload) -> str:
        return await self.add(plan)

    async def update_trip_plan(self, plan_id: str, updates: Payload) -> None:
        await self.update(plan_id, updates)

    async def delete_trip_plan(self, plan_id: str) -> None:
        await self.delete(plan_id)

    async def initialize_default_plans(self, defaults: Sequence[Payload]) -> List[str]:
        """Seed the collection with defaults when it is empty"""
        if not await self.is_empty():
            logger.info("Trip plans already exist in Firestore")
            return []
        logger.info(f"Initializing {len(defaults)} default trip plans...")
        return await self.bulk_create(defaults)
