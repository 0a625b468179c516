"""Pydantic schemas for message endpoints."""

from datetime import datetime

from pydantic import BaseModel


class SendTextRequest(BaseModel):
    text: str


class SendResponse(BaseModel):
    detail: str
    message_type: str


class MessageResponse(BaseModel):
    id: str
    message_text: str | None
    audio_url: str | None
    audio_public_url: str | None = None
    message_type: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageListResponse(BaseModel):
    items: list[MessageResponse]
    total: int
    unread: int
