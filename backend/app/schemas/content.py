"""
Tour and content schemas: bike tours, destinations, experiences, trip plans
"""
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.common import FirestoreModel, StoredRecord

Difficulty = Literal['Easy', 'Moderate', 'Challenging', 'Expert']

_DURATION_DAYS = re.compile(r'^\s*(\d+)')


def duration_days(duration: Optional[str]) -> Optional[int]:
    """Leading day count of a duration label ("7 Days" -> 7)"""
    if not duration:
        return None
    match = _DURATION_DAYS.match(duration)
    return int(match.group(1)) if match else None


class TourItinerary(BaseModel):
    """One itinerary day (extra per-day details are kept as-is)"""
    model_config = ConfigDict(extra='allow')

    day: int = Field(..., ge=1)
    title: str
    description: str = ""


class GroupSize(BaseModel):
    min: int = Field(..., ge=1)
    max: int = Field(..., ge=1)

    @model_validator(mode='after')
    def check_range(self):
        if self.min > self.max:
            raise ValueError('Group size min cannot exceed max')
        return self


# ==================== Bike Tours ====================

class BikeTourPlanBase(FirestoreModel):
    title: str = Field(..., min_length=2)
    duration: str
    price: float = Field(..., ge=0)
    highlights: List[str] = Field(default_factory=list)
    itinerary: List[TourItinerary] = Field(default_factory=list)
    description: Optional[str] = None
    video_url: Optional[str] = Field(None, alias="videoURL")
    tags: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: bool = Field(False, alias="isFeatured")


class BikeTourPlanCreate(BikeTourPlanBase):
    """Create bike tour request"""


class BikeTourPlanUpdate(FirestoreModel):
    title: Optional[str] = Field(None, min_length=2)
    duration: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    highlights: Optional[List[str]] = None
    itinerary: Optional[List[TourItinerary]] = None
    description: Optional[str] = None
    video_url: Optional[str] = Field(None, alias="videoURL")
    tags: Optional[List[str]] = None
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: Optional[bool] = Field(None, alias="isFeatured")


class BikeTourPlan(StoredRecord, BikeTourPlanBase):
    """Bike tour as stored in Firestore"""


# ==================== Destinations ====================

class DestinationBase(FirestoreModel):
    title: str = Field(..., min_length=2)
    description: str = ""
    highlights: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: bool = Field(False, alias="isFeatured")


class DestinationCreate(DestinationBase):
    """Create destination request"""


class DestinationUpdate(FirestoreModel):
    title: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = None
    highlights: Optional[List[str]] = None
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: Optional[bool] = Field(None, alias="isFeatured")


class Destination(StoredRecord, DestinationBase):
    """Destination as stored in Firestore"""


# ==================== Experiences ====================

class ExperienceBase(FirestoreModel):
    title: str = Field(..., min_length=2)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: bool = Field(False, alias="isFeatured")


class ExperienceCreate(ExperienceBase):
    """Create experience request"""


class ExperienceUpdate(FirestoreModel):
    title: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: Optional[bool] = Field(None, alias="isFeatured")


class Experience(StoredRecord, ExperienceBase):
    """Experience as stored in Firestore"""


# ==================== Trip Plans ====================

class TripPlanBase(FirestoreModel):
    title: str = Field(..., min_length=2)
    route: List[str] = Field(default_factory=list)
    duration: str
    price: float = Field(..., ge=0)
    description: str = ""
    map_url: Optional[str] = Field(None, alias="mapURL")
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: bool = Field(False, alias="isFeatured")
    highlights: List[str] = Field(default_factory=list)
    itinerary: List[TourItinerary] = Field(default_factory=list)
    difficulty: Difficulty = 'Moderate'
    best_season: List[str] = Field(default_factory=list, alias="bestSeason")
    group_size: Optional[GroupSize] = Field(None, alias="groupSize")


class TripPlanCreate(TripPlanBase):
    """Create trip plan request"""


class TripPlanUpdate(FirestoreModel):
    title: Optional[str] = Field(None, min_length=2)
    route: Optional[List[str]] = None
    duration: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    map_url: Optional[str] = Field(None, alias="mapURL")
    cover_image: Optional[str] = Field(None, alias="coverImage")
    is_featured: Optional[bool] = Field(None, alias="isFeatured")
    highlights: Optional[List[str]] = None
    itinerary: Optional[List[TourItinerary]] = None
    difficulty: Optional[Difficulty] = None
    best_season: Optional[List[str]] = Field(None, alias="bestSeason")
    group_size: Optional[GroupSize] = Field(None, alias="groupSize")


class TripPlan(StoredRecord, TripPlanBase):
    """Trip plan as stored in Firestore"""
