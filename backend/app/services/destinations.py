"""
Destinations service
"""
from typing import Callable, List, Optional

from app.core.firebase import Collections
from app.schemas.content import Destination
from app.services.base import FeaturedContentService, Payload


class DestinationsService(FeaturedContentService[Destination]):
    collection = Collections.DESTINATIONS
    model = Destination

    def subscribe_to_destinations(self, callback: Callable[[List[Destination]], None]) -> Callable[[], None]:
        return self.subscribe(callback)

    def subscribe_to_featured_destinations(self, callback: Callable[[List[Destination]], None]) -> Callable[[], None]:
        return self.subscribe_featured(callback)

    async def get_all_destinations(self, use_cache: bool = True) -> List[Destination]:
        return await self.get_all(use_cache=use_cache)

    async def get_destination(self, destination_id: str) -> Optional[Destination]:
        return await self.get(destination_id)

    async def add_destination(self, data: Payload) -> str:
        return await self.add(data)

    async def update_destination(self, destination_id: str, updates: Payload) -> None:
        await self.update(destination_id, updates)

    async def delete_destination(self, destination_id: str) -> None:
        await self.delete(destination_id)
