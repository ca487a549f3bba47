"""
Content endpoints: bike tours, destinations, experiences and trip plans

All four collections share the same CRUD surface, so their routers are built
by one factory. Bike tours additionally expose a text search.
"""
import logging
from typing import Callable, List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import (
    get_bike_tours_service,
    get_destinations_service,
    get_experiences_service,
    get_trip_plans_service,
)
from app.core.monitoring import measure_operation
from app.schemas.content import (
    BikeTourPlan,
    BikeTourPlanCreate,
    BikeTourPlanUpdate,
    Destination,
    DestinationCreate,
    DestinationUpdate,
    Experience,
    ExperienceCreate,
    ExperienceUpdate,
    TripPlan,
    TripPlanCreate,
    TripPlanUpdate,
)
from app.services.base import FeaturedContentService
from app.services.bike_tours import BikeToursService

logger = logging.getLogger(__name__)


def build_content_router(
    name: str,
    label: str,
    get_service: Callable[..., FeaturedContentService],
    model: Type[BaseModel],
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    router: Optional[APIRouter] = None
) -> APIRouter:
    """
    CRUD router for one content collection

    Args:
        name: Operation prefix used in timing logs (e.g. 'destinations')
        label: Human readable singular for error messages
        get_service: FastAPI dependency returning the collection service
        model: Stored document schema (response model)
        create_model: Request body for POST
        update_model: Request body for PATCH
        router: Existing router to extend (routes declared on it first win)
    """
    router = router or APIRouter()

    async def get_or_404(service: FeaturedContentService, doc_id: str):
        document = await service.get(doc_id)
        if document is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{label} {doc_id} not found"
            )
        return document

    @router.get("", response_model=List[model])
    async def list_documents(
        featured: Optional[bool] = Query(None, description="Only featured (true) or non-featured (false)"),
        service: FeaturedContentService = Depends(get_service)
    ):
        async with measure_operation(f"{name}.list"):
            if featured is None:
                return await service.get_all()
            return await service.get_featured(featured)

    @router.get("/{doc_id}", response_model=model)
    async def get_document(doc_id: str, service: FeaturedContentService = Depends(get_service)):
        async with measure_operation(f"{name}.get"):
            return await get_or_404(service, doc_id)

    @router.post("", response_model=model, status_code=status.HTTP_201_CREATED)
    async def create_document(body: create_model, service: FeaturedContentService = Depends(get_service)):
        async with measure_operation(f"{name}.create"):
            doc_id = await service.add(body)
            logger.info(f"✅ {label} created: {doc_id}")
            return await get_or_404(service, doc_id)

    @router.patch("/{doc_id}", response_model=model)
    async def update_document(
        doc_id: str,
        body: update_model,
        service: FeaturedContentService = Depends(get_service)
    ):
        async with measure_operation(f"{name}.update"):
            await service.update(doc_id, body)
            return await get_or_404(service, doc_id)

    @router.delete("/{doc_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_document(doc_id: str, service: FeaturedContentService = Depends(get_service)):
        async with measure_operation(f"{name}.delete"):
            await service.delete(doc_id)

    return router


# ==================== Bike Tours ====================

bike_tours_router = APIRouter()


@bike_tours_router.get("/search", response_model=List[BikeTourPlan])
async def search_bike_tours(
    q: str = Query(..., min_length=1, description="Matches title, description or highlights"),
    service: BikeToursService = Depends(get_bike_tours_service)
):
    async with measure_operation("bike_tours.search"):
        return await service.search_bike_tours(q)


build_content_router(
    "bike_tours", "Bike tour", get_bike_tours_service,
    BikeTourPlan, BikeTourPlanCreate, BikeTourPlanUpdate,
    router=bike_tours_router,
)

# ==================== Destinations / Experiences / Trip Plans ====================

destinations_router = build_content_router(
    "destinations", "Destination", get_destinations_service,
    Destination, DestinationCreate, DestinationUpdate,
)

experiences_router = build_content_router(
    "experiences", "Experience", get_experiences_service,
    Experience, ExperienceCreate, ExperienceUpdate,
)

trip_plans_router = build_content_router(
    "trip_plans", "Trip plan", get_trip_plans_service,
    TripPlan, TripPlanCreate, TripPlanUpdate,
)
