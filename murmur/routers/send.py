"""Public endpoints for anonymous senders."""

from fastapi import APIRouter, Depends, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from murmur.database import get_db
from murmur.exceptions import StorageError
from murmur.rate_limit import limiter
from murmur.routers.errors import http_error
from murmur.schemas.message import SendResponse, SendTextRequest
from murmur.services.message import get_message_service
from murmur.services.profile import get_profile_service

router = APIRouter(prefix="/api/v1/send", tags=["Send"])


def _recipient_id(db: Session, username: str) -> str:
    profile = get_profile_service().get_profile_by_handle(db, username)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile.id


@router.post("/{username}/text", response_model=SendResponse, status_code=201)
@limiter.limit("10/minute")
def send_text_message(
    request: Request,
    username: str,
    body: SendTextRequest,
    db: Session = Depends(get_db),
) -> SendResponse:
    """Send an anonymous text message."""
    recipient_id = _recipient_id(db, username)
    try:
        message = get_message_service().send_text(db, recipient_id, body.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return SendResponse(detail="Your anonymous message has been sent!", message_type=message.message_type)


@router.post("/{username}/audio", response_model=SendResponse, status_code=201)
@limiter.limit("10/minute")
async def send_audio_message(
    request: Request,
    username: str,
    file: UploadFile,
    text: str | None = Form(None),
    db: Session = Depends(get_db),
) -> SendResponse:
    """Send an anonymous recorded or uploaded audio message, optionally with text."""
    recipient_id = _recipient_id(db, username)
    try:
        message = await get_message_service().send_audio(db, recipient_id, file, text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except StorageError as e:
        raise http_error(e) from None
    return SendResponse(detail="Your anonymous audio message has been sent!", message_type=message.message_type)
