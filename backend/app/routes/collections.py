"""
MeMantra Backend — Collection Route Handlers
==============================================

What:  /api/collections — CRUD over the caller's collections and the
       membership endpoints that add/remove mantras.
How:   Every handler requires a bearer token (`CurrentUser`), delegates to
       CollectionService and wraps the result in the response envelope.
       Not-found, forbidden and database failures are raised by the service
       and mapped to 404/403/500 by the global handlers in main.py.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import CurrentUser
from app.schemas.collection import (
    CollectionCreate,
    CollectionData,
    CollectionDetailData,
    CollectionDetailResponse,
    CollectionListData,
    CollectionListResponse,
    CollectionOut,
    CollectionResponse,
    CollectionUpdate,
)
from app.schemas.common import ErrorResponse, MembershipResponse, MessageResponse
from app.schemas.mantra import MantraOut
from app.services.collection_service import collection_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collections", tags=["Collections"])

_guarded_responses = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Collection belongs to another user", "model": ErrorResponse},
    404: {"description": "Collection not found", "model": ErrorResponse},
}

CollectionId = Annotated[int, Path(gt=0, description="Collection id")]
MantraId = Annotated[int, Path(gt=0, description="Mantra id")]


@router.get(
    "",
    response_model=CollectionListResponse,
    responses={401: _guarded_responses[401]},
    summary="List the caller's collections",
)
async def list_collections(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CollectionListResponse:
    collections = await collection_service.list_for_user(db, current_user.user_id)
    return CollectionListResponse(
        data=CollectionListData(
            collections=[CollectionOut.model_validate(c) for c in collections]
        )
    )


@router.get(
    "/{collection_id}",
    response_model=CollectionDetailResponse,
    responses=_guarded_responses,
    summary="Get a collection with its mantras",
)
async def get_collection(
    current_user: CurrentUser,
    collection_id: CollectionId,
    db: AsyncSession = Depends(get_db_session),
) -> CollectionDetailResponse:
    collection, mantras = await collection_service.get_with_mantras(
        db, collection_id, current_user.user_id
    )
    return CollectionDetailResponse(
        data=CollectionDetailData(
            collection=CollectionOut.model_validate(collection),
            mantras=[MantraOut.model_validate(m) for m in mantras],
        )
    )


@router.post(
    "",
    status_code=201,
    response_model=CollectionResponse,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        401: _guarded_responses[401],
    },
    summary="Create a collection",
)
async def create_collection(
    body: CollectionCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    collection = await collection_service.create(
        db, current_user.user_id, body.name, body.description
    )
    return CollectionResponse(
        message="Collection created successfully",
        data=CollectionData(collection=CollectionOut.model_validate(collection)),
    )


@router.put(
    "/{collection_id}",
    response_model=CollectionResponse,
    responses=_guarded_responses,
    summary="Rename or re-describe a collection",
)
async def update_collection(
    body: CollectionUpdate,
    current_user: CurrentUser,
    collection_id: CollectionId,
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    collection = await collection_service.update(
        db,
        collection_id,
        current_user.user_id,
        body.model_dump(exclude_unset=True),
    )
    return CollectionResponse(
        message="Collection updated successfully",
        data=CollectionData(collection=CollectionOut.model_validate(collection)),
    )


@router.delete(
    "/{collection_id}",
    response_model=MessageResponse,
    responses=_guarded_responses,
    summary="Delete a collection and its memberships",
)
async def delete_collection(
    current_user: CurrentUser,
    collection_id: CollectionId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await collection_service.delete(db, collection_id, current_user.user_id)
    return MessageResponse(message="Collection deleted successfully")


@router.post(
    "/{collection_id}/mantras/{mantra_id}",
    response_model=MembershipResponse,
    responses={
        **_guarded_responses,
        500: {"description": "Insert failed (e.g. unknown mantra)", "model": ErrorResponse},
    },
    summary="Add a mantra to a collection (idempotent)",
    description=(
        "Returns 200 whether or not the mantra was already present; "
        "`alreadyExists` tells the two cases apart."
    ),
)
async def add_mantra_to_collection(
    current_user: CurrentUser,
    collection_id: CollectionId,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MembershipResponse:
    already_exists = await collection_service.add_mantra(
        db, collection_id, mantra_id, current_user.user_id
    )
    message = (
        "Mantra already in collection"
        if already_exists
        else "Mantra added to collection successfully"
    )
    return MembershipResponse(message=message, already_exists=already_exists)


@router.delete(
    "/{collection_id}/mantras/{mantra_id}",
    response_model=MessageResponse,
    responses=_guarded_responses,
    summary="Remove a mantra from a collection",
)
async def remove_mantra_from_collection(
    current_user: CurrentUser,
    collection_id: CollectionId,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await collection_service.remove_mantra(
        db, collection_id, mantra_id, current_user.user_id
    )
    return MessageResponse(message="Mantra removed from collection successfully")
