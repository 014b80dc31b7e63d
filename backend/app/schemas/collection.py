"""
MeMantra Backend — Collection Schemas
=======================================

What:  Request bodies and response envelopes for /api/collections.

Response shapes (status 200 unless noted):
    GET    /collections                  {status, data: {collections}}
    GET    /collections/{id}             {status, data: {collection, mantras}}
    POST   /collections            (201) {status, message, data: {collection}}
    PUT    /collections/{id}             {status, message, data: {collection}}
    DELETE /collections/{id}             {status, message}
    POST   /collections/{id}/mantras/{m} {status, message, alreadyExists}
    DELETE /collections/{id}/mantras/{m} {status, message}
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.mantra import MantraOut


class CollectionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Collection name cannot be blank")
        return v


class CollectionUpdate(BaseModel):
    """
    Partial update. A field left out of the body is untouched; an explicit
    null description clears it. Name may not be null or blank.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Collection name cannot be null")
        v = v.strip()
        if not v:
            raise ValueError("Collection name cannot be blank")
        return v


class CollectionOut(BaseModel):
    collection_id: int
    user_id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CollectionListData(BaseModel):
    collections: List[CollectionOut]


class CollectionListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: CollectionListData


class CollectionDetailData(BaseModel):
    collection: CollectionOut
    mantras: List[MantraOut]


class CollectionDetailResponse(BaseModel):
    status: Literal["success"] = "success"
    data: CollectionDetailData


class CollectionData(BaseModel):
    collection: CollectionOut


class CollectionResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: CollectionData
