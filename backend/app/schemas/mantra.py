"""
MeMantra Backend — Mantra Schemas
===================================

Request bodies for admin mantra management and the response shapes for
listing, detail, popular and feed views.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class MantraCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    key_takeaway: str = Field(min_length=1)
    background_author: Optional[str] = Field(default=None, max_length=255)
    background_description: Optional[str] = None
    jamie_take: Optional[str] = None
    when_where: Optional[str] = None
    negative_thoughts: Optional[str] = None
    cbt_principles: Optional[str] = None
    references: Optional[str] = None


class MantraUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    key_takeaway: Optional[str] = Field(default=None, min_length=1)
    background_author: Optional[str] = Field(default=None, max_length=255)
    background_description: Optional[str] = None
    jamie_take: Optional[str] = None
    when_where: Optional[str] = None
    negative_thoughts: Optional[str] = None
    cbt_principles: Optional[str] = None
    references: Optional[str] = None

    @field_validator("title", "key_takeaway")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class MantraOut(BaseModel):
    mantra_id: int
    title: str
    key_takeaway: str
    background_author: Optional[str] = None
    background_description: Optional[str] = None
    jamie_take: Optional[str] = None
    when_where: Optional[str] = None
    negative_thoughts: Optional[str] = None
    cbt_principles: Optional[str] = None
    references: Optional[str] = None
    created_by: Optional[int] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PopularMantraOut(MantraOut):
    like_count: int = 0


class FeedMantraOut(MantraOut):
    """Mantra plus the caller's own like/save state, as the home feed needs it."""
    is_liked: bool = Field(default=False, alias="isLiked")
    is_saved: bool = Field(default=False, alias="isSaved")

    model_config = {"from_attributes": True, "populate_by_name": True}


class Pagination(BaseModel):
    limit: int
    offset: int
    count: int


class MantraListData(BaseModel):
    mantras: List[MantraOut]
    pagination: Pagination


class MantraListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: MantraListData


class MantraData(BaseModel):
    mantra: MantraOut


class MantraDetailResponse(BaseModel):
    status: Literal["success"] = "success"
    data: MantraData


class MantraResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: MantraData


class PopularMantraData(BaseModel):
    mantras: List[PopularMantraOut]


class PopularMantraResponse(BaseModel):
    status: Literal["success"] = "success"
    data: PopularMantraData


class FeedResponse(BaseModel):
    status: Literal["success"] = "success"
    data: List[FeedMantraOut]


class LikedMantrasData(BaseModel):
    mantras: List[MantraOut]


class LikedMantrasResponse(BaseModel):
    status: Literal["success"] = "success"
    data: LikedMantrasData


class LikeCheckData(BaseModel):
    has_liked: bool = Field(alias="hasLiked")

    model_config = {"populate_by_name": True}


class LikeCheckResponse(BaseModel):
    status: Literal["success"] = "success"
    data: LikeCheckData
