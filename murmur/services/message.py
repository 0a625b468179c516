"""Message service: anonymous inserts and recipient-side reads."""

import logging

from fastapi import UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session

from murmur.config import get_settings
from murmur.models.message import MESSAGE_TYPES, Message
from murmur.services.storage import get_storage_service

logger = logging.getLogger("murmur")


def resolve_message_type(text: str | None, audio_url: str | None) -> str:
    """Type tag for a message with the given parts populated."""
    if text and audio_url:
        return "both"
    if audio_url:
        return "audio"
    return "text"


class MessageService:
    """Handles message creation, listing and the read flag."""

    def validate_text(self, text: str | None) -> str | None:
        """Validate message text. Returns error message or None if valid."""
        max_length = get_settings().MAX_MESSAGE_LENGTH
        if text is not None and len(text.strip()) > max_length:
            return f"Message is too long. Maximum: {max_length} characters"
        return None

    def insert_message(
        self,
        db: Session,
        recipient_id: str,
        text: str | None = None,
        audio_url: str | None = None,
        message_type: str | None = None,
    ) -> Message:
        """Insert a message for a recipient. Senders get no other write access."""
        text = text.strip() if text and text.strip() else None
        message_type = message_type or resolve_message_type(text, audio_url)
        if message_type not in MESSAGE_TYPES:
            raise ValueError(f"Unknown message type '{message_type}'")

        message = Message(
            recipient_id=recipient_id,
            message_text=text,
            audio_url=audio_url,
            message_type=message_type,
            is_read=False,
        )
        db.add(message)
        db.commit()
        db.refresh(message)
        logger.info("Message %s (%s) delivered to %s", message.id, message_type, recipient_id)
        return message

    def send_text(self, db: Session, recipient_id: str, text: str | None) -> Message:
        """Validate and store an anonymous text message. Raises ValueError on invalid input."""
        if not text or not text.strip():
            raise ValueError("Message cannot be empty")
        error = self.validate_text(text)
        if error:
            raise ValueError(error)
        return self.insert_message(db, recipient_id, text=text)

    async def send_audio(
        self, db: Session, recipient_id: str, upload: UploadFile, text: str | None = None
    ) -> Message:
        """Upload the audio blob, then store the message referencing it.

        Raises ValueError on invalid input and StorageError subclasses when the upload fails.
        """
        storage = get_storage_service()
        error = storage.validate_audio_type(upload.content_type) or self.validate_text(text)
        if error:
            raise ValueError(error)
        audio_url = await storage.upload_audio(recipient_id, upload)
        return self.insert_message(db, recipient_id, text=text, audio_url=audio_url)

    def list_messages_for_recipient(self, db: Session, recipient_id: str) -> list[Message]:
        """All messages for a recipient, newest first."""
        return (
            db.query(Message)
            .filter(Message.recipient_id == recipient_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .all()
        )

    def count_unread(self, db: Session, recipient_id: str) -> int:
        return (
            db.query(func.count(Message.id))
            .filter(Message.recipient_id == recipient_id, Message.is_read.is_(False))
            .scalar()
            or 0
        )

    def get_message(self, db: Session, message_id: str, recipient_id: str) -> Message | None:
        """Get a single message, scoped to its recipient."""
        return db.query(Message).filter(Message.id == message_id, Message.recipient_id == recipient_id).first()

    def mark_read(self, db: Session, message_id: str, recipient_id: str) -> Message | None:
        """Set the read flag. Returns None if the message does not belong to the recipient."""
        message = self.get_message(db, message_id, recipient_id)
        if not message:
            return None
        if not message.is_read:
            message.is_read = True
            db.commit()
            db.refresh(message)
        return message


_message_service: MessageService | None = None


def get_message_service() -> MessageService:
    """Get singleton message service instance."""
    global _message_service
    if _message_service is None:
        _message_service = MessageService()
    return _message_service
