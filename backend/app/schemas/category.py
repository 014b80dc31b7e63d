"""
MeMantra Backend — Category Schemas
=====================================

    GET /categories                 {status, data: {categories}}
    GET /mantras/category/{id}      {status, data: {mantras, count}}
"""

from typing import List, Literal, Optional

from pydantic import BaseModel

from app.schemas.mantra import MantraOut


class CategoryOut(BaseModel):
    category_id: int
    name: str
    description: Optional[str] = None
    category_type: Optional[str] = None
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class CategoryListData(BaseModel):
    categories: List[CategoryOut]


class CategoryListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: CategoryListData


class CategoryMantrasData(BaseModel):
    mantras: List[MantraOut]
    count: int


class CategoryMantrasResponse(BaseModel):
    status: Literal["success"] = "success"
    data: CategoryMantrasData
