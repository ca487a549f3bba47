"""
FastAPI dependencies resolving services from application state
"""
from fastapi import Request

from app.services.bike_tours import BikeToursService
from app.services.container import Services
from app.services.destinations import DestinationsService
from app.services.experiences import ExperiencesService
from app.services.trip_plans import TripPlansService
from app.services.vehicles import VehiclesService


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_vehicles_service(request: Request) -> VehiclesService:
    return get_services(request).vehicles


def get_bike_tours_service(request: Request) -> BikeToursService:
    return get_services(request).bike_tours


def get_destinations_service(request: Request) -> DestinationsService:
    return get_services(request).destinations


def get_experiences_service(request: Request) -> ExperiencesService:
    return get_services(request).experiences


def get_trip_plans_service(request: Request) -> TripPlansService:
    return get_services(request).trip_plans
