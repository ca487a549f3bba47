"""
Domain services sharing one data layer
"""
from dataclasses import dataclass

from app.services.bike_tours import BikeToursService
from app.services.data import DataLayer
from app.services.destinations import DestinationsService
from app.services.experiences import ExperiencesService
from app.services.trip_plans import TripPlansService
from app.services.vehicles import VehiclesService


@dataclass
class Services:
    data: DataLayer
    vehicles: VehiclesService
    bike_tours: BikeToursService
    destinations: DestinationsService
    experiences: ExperiencesService
    trip_plans: TripPlansService

    def close(self):
        """Tear down every live listener and drop cached reads"""
        self.data.close()


def build_services(data: DataLayer) -> Services:
    return Services(
        data=data,
        vehicles=VehiclesService(data),
        bike_tours=BikeToursService(data),
        destinations=DestinationsService(data),
        experiences=ExperiencesService(data),
        trip_plans=TripPlansService(data),
    )
