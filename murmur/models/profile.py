"""Profile model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String

from murmur.database import Base


class Profile(Base):
    """Public identity of a recipient. The username is the share-link handle and never changes."""

    __tablename__ = "profile"

    id = Column(String(36), ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    username = Column(String(32), unique=True, nullable=False, index=True)
    display_name = Column(String(256), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
