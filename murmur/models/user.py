"""User account model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String

from murmur.database import Base


class User(Base):
    """Authenticated account that owns exactly one profile."""

    __tablename__ = "user"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)
