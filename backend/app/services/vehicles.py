"""
Vehicle fleet service
"""
from typing import Callable, List, Optional, Sequence

from app.core.firebase import Collections
from app.schemas.vehicle import Vehicle
from app.services.base import CollectionService, Payload
from app.services.data import OrderBy, Where
from app.services.data.query import Constraint


class VehiclesService(CollectionService[Vehicle]):
    collection = Collections.VEHICLES
    model = Vehicle
    # Older fleet documents have no createdAt, so the full list is unordered
    default_order = None

    def subscribe_to_vehicles(self, callback: Callable[[List[Vehicle]], None]) -> Callable[[], None]:
        return self.subscribe(callback)

    def subscribe_to_vehicles_by_region(
        self,
        region: str,
        callback: Callable[[List[Vehicle]], None]
    ) -> Callable[[], None]:
        """Live view of one region's fleet, newest first"""
        return self.subscribe(
            callback,
            [Where('region', '==', region), OrderBy('createdAt', descending=True)],
            key=f"{self.collection}:region:{region}",
        )

    async def get_all_vehicles(
        self,
        region: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        available: Optional[bool] = None,
        use_cache: bool = True
    ) -> List[Vehicle]:
        constraints: List[Constraint] = []
        if region:
            constraints.append(Where('region', '==', region))
        if vehicle_type:
            constraints.append(Where('type', '==', vehicle_type.lower()))
        if available is not None:
            constraints.append(Where('available', '==', available))
        return await self.get_all(constraints, use_cache=use_cache)

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return await self.get(vehicle_id)

    async def add_vehicle(self, data: Payload) -> str:
        return await self.add(data)

    async def update_vehicle(self, vehicle_id: str, updates: Payload) -> None:
        await self.update(vehicle_id, updates)

    async def delete_vehicle(self, vehicle_id: str) -> None:
        await self.delete(vehicle_id)

    async def toggle_availability(self, vehicle_id: str, available: bool) -> None:
        await self.update(vehicle_id, {'available': available})

    async def bulk_add_vehicles(self, vehicles: Sequence[Payload]) -> List[str]:
        return await self.bulk_create(vehicles)
