"""
Experiences service
"""
from typing import Callable, List, Optional

from app.core.firebase import Collections
from app.schemas.content import Experience
from app.services.base import FeaturedContentService, Payload


class ExperiencesService(FeaturedContentService[Experience]):
    collection = Collections.EXPERIENCES
    model = Experience

    def subscribe_to_experiences(self, callback: Callable[[List[Experience]], None]) -> Callable[[], None]:
        return self.subscribe(callback)

    def subscribe_to_featured_experiences(self, callback: Callable[[List[Experience]], None]) -> Callable[[], None]:
        return self.subscribe_featured(callback)

    async def get_all_experiences(self, use_cache: bool = True) -> List[Experience]:
        return await self.get_all(use_cache=use_cache)

    async def get_experience(self, experience_id: str) -> Optional[Experience]:
        return await self.get(experience_id)

    async def add_experience(self, data: Payload) -> str:
        return await self.add(data)

    async def update_experience(self, experience_id: str, updates: Payload) -> None:
        await self.update(experience_id, updates)

    async def delete_experience(self, experience_id: str) -> None:
        await self.delete(experience_id)
