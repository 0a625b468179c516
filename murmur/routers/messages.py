"""Recipient message endpoints: listing, read flag and downloads."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from murmur.database import get_db
from murmur.dependencies import CurrentUser, get_base_url, get_current_user
from murmur.exceptions import ExportError, StorageError
from murmur.models.message import Message
from murmur.routers.errors import http_error
from murmur.schemas.message import MessageListResponse, MessageResponse
from murmur.services.export import Artifact, get_export_service
from murmur.services.message import get_message_service
from murmur.services.storage import get_storage_service

logger = logging.getLogger("murmur")

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


def to_response(message: Message, base_url: str) -> MessageResponse:
    response = MessageResponse.model_validate(message)
    if message.audio_url:
        response.audio_public_url = get_storage_service().resolve_public_url(message.audio_url, base_url)
    return response


def download_response(artifact: Artifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


def _get_owned_message(db: Session, message_id: str, user: CurrentUser) -> Message:
    message = get_message_service().get_message(db, message_id, user.user_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message


@router.get("/", response_model=MessageListResponse)
def list_messages(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageListResponse:
    """All messages sent to the current recipient, newest first."""
    service = get_message_service()
    messages = service.list_messages_for_recipient(db, user.user_id)
    base_url = get_base_url(request)
    return MessageListResponse(
        items=[to_response(m, base_url) for m in messages],
        total=len(messages),
        unread=sum(1 for m in messages if not m.is_read),
    )


@router.post("/{message_id}/read", response_model=MessageResponse)
def mark_message_read(
    request: Request,
    message_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Mark a message as read."""
    message = get_message_service().mark_read(db, message_id, user.user_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return to_response(message, get_base_url(request))


@router.get("/{message_id}/audio")
def download_audio(
    message_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    """Download the original audio of a message."""
    message = _get_owned_message(db, message_id, user)
    try:
        artifact = get_export_service().export_audio(message)
    except (StorageError, ExportError) as e:
        logger.warning("Audio download failed for message %s: %s", message_id, e)
        raise http_error(e) from None
    return download_response(artifact)


@router.get("/{message_id}/image")
def download_image(
    message_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    """Download the message rendered as a JPEG card."""
    message = _get_owned_message(db, message_id, user)
    try:
        artifact = get_export_service().export_image(message)
    except ExportError as e:
        logger.warning("Image export failed for message %s: %s", message_id, e)
        raise http_error(e) from None
    return download_response(artifact)


@router.get("/{message_id}/video")
def download_video(
    message_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    """Download an audio message as an animated WebM video."""
    message = _get_owned_message(db, message_id, user)
    try:
        artifact = get_export_service().export_video(message)
    except (StorageError, ExportError) as e:
        logger.warning("Video export failed for message %s: %s", message_id, e)
        raise http_error(e) from None
    return download_response(artifact)
