"""
Shared schema pieces for Firestore-backed records
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.firebase import to_datetime


class FirestoreModel(BaseModel):
    """Base for documents whose Firestore fields are camelCase (web app convention)"""
    model_config = ConfigDict(populate_by_name=True)

    def to_firestore(self, partial: bool = False) -> dict:
        """Field dict using Firestore names; partial keeps only explicitly set fields"""
        if partial:
            return self.model_dump(by_alias=True, exclude_unset=True)
        return self.model_dump(by_alias=True, exclude_none=True)


class StoredRecord(FirestoreModel):
    """Fields every stored document carries"""
    id: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def normalize_timestamp(cls, v):
        return to_datetime(v)
