"""
Vehicle fleet endpoints for Himalayan Rides
Reads are served through the cached data layer, writes go through atomic batches
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_vehicles_service
from app.core.monitoring import measure_operation
from app.schemas.vehicle import AvailabilityUpdate, Vehicle, VehicleCreate, VehicleUpdate
from app.services.vehicles import VehiclesService

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== Helper Functions ====================

async def _get_or_404(service: VehiclesService, vehicle_id: str) -> Vehicle:
    vehicle = await service.get_vehicle(vehicle_id)
    if vehicle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Vehicle {vehicle_id} not found"
        )
    return vehicle


# ==================== Endpoints ====================

@router.get("", response_model=List[Vehicle])
async def list_vehicles(
    region: Optional[str] = Query(None, description="Filter by region"),
    type: Optional[str] = Query(None, description="Filter by type (bike, car, suv)"),
    available: Optional[bool] = Query(None, description="Filter by availability"),
    service: VehiclesService = Depends(get_vehicles_service)
):
    """
    List vehicles with optional filtering

    Query parameters:
    - region: Filter by region (e.g. Leh)
    - type: Filter by vehicle type
    - available: Only available (true) or unavailable (false) vehicles
    """
    async with measure_operation("vehicles.list"):
        return await service.get_all_vehicles(region=region, vehicle_type=type, available=available)


@router.get("/{vehicle_id}", response_model=Vehicle)
async def get_vehicle(vehicle_id: str, service: VehiclesService = Depends(get_vehicles_service)):
    async with measure_operation("vehicles.get"):
        return await _get_or_404(service, vehicle_id)


@router.post("", response_model=Vehicle, status_code=status.HTTP_201_CREATED)
async def create_vehicle(vehicle: VehicleCreate, service: VehiclesService = Depends(get_vehicles_service)):
    async with measure_operation("vehicles.create"):
        vehicle_id = await service.add_vehicle(vehicle)
        logger.info(f"✅ Vehicle created: {vehicle_id} ({vehicle.name})")
        return await _get_or_404(service, vehicle_id)


@router.patch("/{vehicle_id}", response_model=Vehicle)
async def update_vehicle(
    vehicle_id: str,
    updates: VehicleUpdate,
    service: VehiclesService = Depends(get_vehicles_service)
):
    """Patch a vehicle; only fields present in the body are written"""
    async with measure_operation("vehicles.update"):
        await service.update_vehicle(vehicle_id, updates)
        return await _get_or_404(service, vehicle_id)


@router.post("/{vehicle_id}/availability", response_model=Vehicle)
async def set_availability(
    vehicle_id: str,
    body: AvailabilityUpdate,
    service: VehiclesService = Depends(get_vehicles_service)
):
    async with measure_operation("vehicles.availability"):
        await service.toggle_availability(vehicle_id, body.available)
        logger.info(f"Vehicle {vehicle_id} availability set to {body.available}")
        return await _get_or_404(service, vehicle_id)


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(vehicle_id: str, service: VehiclesService = Depends(get_vehicles_service)):
    async with measure_operation("vehicles.delete"):
        await service.delete_vehicle(vehicle_id)
