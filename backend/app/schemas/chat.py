"""
MeMantra Backend — Chat Schemas
=================================

What:  Request bodies and response envelopes for /api/chat.

Response shapes (status 200 unless noted):
    GET    /chat/users                         {status, data: {users}}
    GET    /chat/conversations                 {status, data: {conversations}}
    POST   /chat/conversations       (201|200) {status, message, data: {conversation}}
    GET    /chat/conversations/{id}            {status, data: {conversation}}
    GET    /chat/conversations/{id}/messages   {status, data: {messages}}
    PATCH  /chat/conversations/{id}/read       {status, message}
    DELETE /chat/conversations/{id}            {status, message}
    POST   /chat/messages                (201) {status, message, data: {message}}
    POST   /chat/messages/{id}/reactions (201|200) {status, message, data?: {reaction}}
    GET    /chat/messages/{id}/reactions       {status, data: {reactions}}
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# ── Requests ──────────────────────────────────────────────────────────────
class ConversationCreate(BaseModel):
    participant_id: int = Field(gt=0)


class MessageCreate(BaseModel):
    conversation_id: int = Field(gt=0)
    content: str = Field(min_length=1, max_length=1000)
    reply_to_message_id: Optional[int] = Field(default=None, gt=0)

    @field_validator("content")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be blank")
        return v


class ReactionToggle(BaseModel):
    emoji: str = Field(min_length=1, max_length=32)

    @field_validator("emoji")
    @classmethod
    def strip_emoji(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Emoji is required")
        return v


# ── Records ───────────────────────────────────────────────────────────────
class ChatUserOut(BaseModel):
    """What one user may see about another when picking someone to message."""
    user_id: int
    username: str
    email: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationOut(BaseModel):
    conversation_id: int
    user1_id: int
    user2_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationSummary(BaseModel):
    """One row of the inbox, seen from the caller's side."""
    conversation_id: int
    participant_id: int
    participant_username: str
    participant_email: str
    last_message: str = ""
    last_message_time: datetime
    unread_count: int = 0
    created_at: datetime
    updated_at: datetime


class MessageOut(BaseModel):
    message_id: int
    conversation_id: int
    sender_id: int
    content: str
    read: bool = False
    reply_to_message_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReactionOut(BaseModel):
    reaction_id: int
    message_id: int
    user_id: int
    emoji: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReactionGroup(BaseModel):
    emoji: str
    count: int
    users: List[int]


# ── Envelopes ─────────────────────────────────────────────────────────────
class ChatUserListData(BaseModel):
    users: List[ChatUserOut]


class ChatUserListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: ChatUserListData


class ConversationListData(BaseModel):
    conversations: List[ConversationSummary]


class ConversationListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: ConversationListData


class ConversationData(BaseModel):
    conversation: ConversationOut


class ConversationDetailResponse(BaseModel):
    status: Literal["success"] = "success"
    data: ConversationData


class ConversationResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: ConversationData


class MessageListData(BaseModel):
    messages: List[MessageOut]


class MessageListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: MessageListData


class MessageData(BaseModel):
    message: MessageOut


class SentMessageResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: MessageData


class ReactionData(BaseModel):
    reaction: ReactionOut


class ReactionResponse(BaseModel):
    """`data` is present when the reaction was added, absent when removed."""
    status: Literal["success"] = "success"
    message: str
    data: Optional[ReactionData] = None


class ReactionListData(BaseModel):
    reactions: List[ReactionGroup]


class ReactionListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: ReactionListData
