"""
Vehicle request/response schemas
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import FirestoreModel, StoredRecord

VALID_VEHICLE_TYPES = ['bike', 'car', 'suv']


def _validate_type(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if v.lower() not in VALID_VEHICLE_TYPES:
        raise ValueError(f'Type must be one of: {", ".join(VALID_VEHICLE_TYPES)}')
    return v.lower()


class VehicleBase(FirestoreModel):
    """Base vehicle schema"""
    name: str = Field(..., min_length=2)
    type: str
    region: str
    price: float = Field(..., ge=0, description="Daily rental price in INR")
    image: Optional[str] = None
    rating: float = Field(default=0.0, ge=0, le=5)
    fuel: Optional[str] = None
    gearbox: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1, le=15)
    features: List[str] = Field(default_factory=list)
    available: bool = True

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        return _validate_type(v)


class VehicleCreate(VehicleBase):
    """Create vehicle request"""


class VehicleUpdate(FirestoreModel):
    """Update vehicle request (all fields optional)"""
    name: Optional[str] = Field(None, min_length=2)
    type: Optional[str] = None
    region: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    fuel: Optional[str] = None
    gearbox: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1, le=15)
    features: Optional[List[str]] = None
    available: Optional[bool] = None

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        return _validate_type(v)


class Vehicle(StoredRecord, VehicleBase):
    """Vehicle as stored in Firestore"""


class AvailabilityUpdate(BaseModel):
    """Toggle vehicle availability"""
    available: bool
