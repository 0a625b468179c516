"""Session tokens for recipients.

A token identifies the account and carries the profile handle and display name,
so pages can greet the recipient without a profile lookup.
"""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from murmur.config import get_settings


class JWTService:
    """Signs and verifies recipient session tokens."""

    def __init__(self) -> None:
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES

    def create_token(self, user_id: str, email: str, username: str, display_name: str | None) -> str:
        claims = {
            "sub": user_id,
            "email": email,
            "username": username,
            "displayName": display_name,
            "exp": datetime.utcnow() + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """Claims of a valid, unexpired token; None for anything else."""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if not claims.get("sub") or not claims.get("username"):
            return None
        return claims


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
