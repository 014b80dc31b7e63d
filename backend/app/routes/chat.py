"""
MeMantra Backend — Chat Route Handlers
========================================

What:  /api/chat — one-to-one conversations between users, their messages,
       read receipts and emoji reactions.
How:   Every handler requires a bearer token (`CurrentUser`) and delegates
       to ChatService. Only the two participants of a conversation may read,
       post to, mark or delete it; the service raises 404/403 and the global
       handlers in main.py render them.

Route order matters: /conversations and /messages are fixed paths declared
before the /{id} variants under them.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import CurrentUser
from app.schemas.chat import (
    ChatUserListData,
    ChatUserListResponse,
    ChatUserOut,
    ConversationCreate,
    ConversationData,
    ConversationDetailResponse,
    ConversationListData,
    ConversationListResponse,
    ConversationOut,
    ConversationResponse,
    ConversationSummary,
    MessageCreate,
    MessageData,
    MessageListData,
    MessageListResponse,
    MessageOut,
    ReactionData,
    ReactionGroup,
    ReactionListData,
    ReactionListResponse,
    ReactionOut,
    ReactionResponse,
    ReactionToggle,
    SentMessageResponse,
)
from app.schemas.common import ErrorResponse, MessageResponse
from app.services.chat_service import chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])

_guarded_responses = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Caller is not a participant", "model": ErrorResponse},
    404: {"description": "Conversation or message not found", "model": ErrorResponse},
}

ConversationId = Annotated[int, Path(gt=0, description="Conversation id")]
MessageId = Annotated[int, Path(gt=0, description="Message id")]


@router.get(
    "/users",
    response_model=ChatUserListResponse,
    responses={401: _guarded_responses[401]},
    summary="Users the caller can message",
)
async def list_chat_users(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> ChatUserListResponse:
    users = await chat_service.list_other_users(db, current_user.user_id)
    return ChatUserListResponse(
        data=ChatUserListData(users=[ChatUserOut.model_validate(u) for u in users])
    )


# ── Conversations ─────────────────────────────────────────────────────────
@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    responses={401: _guarded_responses[401]},
    summary="The caller's inbox, most recent activity first",
)
async def list_conversations(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> ConversationListResponse:
    summaries = await chat_service.list_conversations(db, current_user.user_id)
    return ConversationListResponse(
        data=ConversationListData(
            conversations=[ConversationSummary(**s) for s in summaries]
        )
    )


@router.post(
    "/conversations",
    status_code=201,
    response_model=ConversationResponse,
    responses={
        200: {"description": "Conversation already exists", "model": ConversationResponse},
        400: {"description": "Invalid body or participant is the caller", "model": ErrorResponse},
        401: _guarded_responses[401],
        404: {"description": "Participant not found", "model": ErrorResponse},
    },
    summary="Start a conversation (idempotent)",
)
async def start_conversation(
    body: ConversationCreate,
    current_user: CurrentUser,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ConversationResponse:
    conversation, created = await chat_service.start_conversation(
        db, current_user.user_id, body.participant_id
    )
    if not created:
        response.status_code = 200
    return ConversationResponse(
        message=(
            "Conversation created successfully" if created else "Conversation already exists"
        ),
        data=ConversationData(conversation=ConversationOut.model_validate(conversation)),
    )


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationDetailResponse,
    responses=_guarded_responses,
    summary="Get a conversation",
)
async def get_conversation(
    current_user: CurrentUser,
    conversation_id: ConversationId,
    db: AsyncSession = Depends(get_db_session),
) -> ConversationDetailResponse:
    conversation = await chat_service.get_participant_conversation(
        db, conversation_id, current_user.user_id
    )
    return ConversationDetailResponse(
        data=ConversationData(conversation=ConversationOut.model_validate(conversation))
    )


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=MessageListResponse,
    responses=_guarded_responses,
    summary="Messages of a conversation, oldest first",
)
async def list_messages(
    current_user: CurrentUser,
    conversation_id: ConversationId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageListResponse:
    messages = await chat_service.list_messages(db, conversation_id, current_user.user_id)
    return MessageListResponse(
        data=MessageListData(messages=[MessageOut.model_validate(m) for m in messages])
    )


@router.patch(
    "/conversations/{conversation_id}/read",
    response_model=MessageResponse,
    responses=_guarded_responses,
    summary="Mark the other user's messages as read",
)
async def mark_conversation_read(
    current_user: CurrentUser,
    conversation_id: ConversationId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await chat_service.mark_read(db, conversation_id, current_user.user_id)
    return MessageResponse(message="Messages marked as read")


@router.delete(
    "/conversations/{conversation_id}",
    response_model=MessageResponse,
    responses=_guarded_responses,
    summary="Delete a conversation and its messages",
)
async def delete_conversation(
    current_user: CurrentUser,
    conversation_id: ConversationId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await chat_service.delete_conversation(db, conversation_id, current_user.user_id)
    return MessageResponse(message="Conversation deleted successfully")


# ── Messages ──────────────────────────────────────────────────────────────
@router.post(
    "/messages",
    status_code=201,
    response_model=SentMessageResponse,
    responses={
        **_guarded_responses,
        400: {"description": "Invalid body or cross-conversation reply", "model": ErrorResponse},
    },
    summary="Send a message, optionally as a reply",
)
async def send_message(
    body: MessageCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> SentMessageResponse:
    message = await chat_service.send_message(
        db,
        current_user.user_id,
        body.conversation_id,
        body.content,
        reply_to_message_id=body.reply_to_message_id,
    )
    return SentMessageResponse(
        message="Message sent successfully",
        data=MessageData(message=MessageOut.model_validate(message)),
    )


@router.post(
    "/messages/{message_id}/reactions",
    status_code=201,
    response_model=ReactionResponse,
    response_model_exclude_none=True,
    responses={
        **_guarded_responses,
        200: {"description": "Reaction removed", "model": ReactionResponse},
    },
    summary="Toggle the caller's emoji reaction on a message",
)
async def toggle_reaction(
    body: ReactionToggle,
    current_user: CurrentUser,
    message_id: MessageId,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ReactionResponse:
    reaction, added = await chat_service.toggle_reaction(
        db, message_id, current_user.user_id, body.emoji
    )
    if not added:
        response.status_code = 200
        return ReactionResponse(message="Reaction removed")
    return ReactionResponse(
        message="Reaction added",
        data=ReactionData(reaction=ReactionOut.model_validate(reaction)),
    )


@router.get(
    "/messages/{message_id}/reactions",
    response_model=ReactionListResponse,
    responses=_guarded_responses,
    summary="Reactions on a message, grouped by emoji",
)
async def list_reactions(
    current_user: CurrentUser,
    message_id: MessageId,
    db: AsyncSession = Depends(get_db_session),
) -> ReactionListResponse:
    groups = await chat_service.list_reactions(db, message_id, current_user.user_id)
    return ReactionListResponse(
        data=ReactionListData(reactions=[ReactionGroup(**g) for g in groups])
    )
