"""Anonymous message model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String, Text

from murmur.database import Base

MESSAGE_TYPES = ("text", "audio", "both")


class Message(Base):
    """Message left by an anonymous sender for a recipient profile."""

    __tablename__ = "message"
    __table_args__ = (CheckConstraint("message_type IN ('text', 'audio', 'both')", name="ck_message_type"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(36), ForeignKey("profile.id", ondelete="CASCADE"), nullable=False, index=True)
    message_text = Column(Text, nullable=True)
    audio_url = Column(String(512), nullable=True)  # storage path, e.g. audio-messages/<name>
    message_type = Column(String(16), nullable=False, default="text")
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
