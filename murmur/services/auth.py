"""Authentication service."""

import uuid
from dataclasses import dataclass
from datetime import datetime

import bcrypt
from sqlalchemy.orm import Session

from murmur.models.profile import Profile
from murmur.models.user import User
from murmur.services.profile import get_profile_service


@dataclass
class AuthResult:
    """Result of an authentication attempt."""

    success: bool
    error: str | None = None
    user_id: str | None = None
    email: str | None = None
    username: str | None = None
    display_name: str | None = None


class AuthService:
    """Handles account registration and authentication."""

    def register(
        self,
        db: Session,
        email: str,
        password: str,
        username: str | None = None,
        display_name: str | None = None,
    ) -> AuthResult:
        """Register a new account and provision its profile in one transaction."""
        profiles = get_profile_service()

        existing = db.query(User).filter(User.email.ilike(email.strip())).first()
        if existing:
            return AuthResult(success=False, error="Email already registered")

        if username:
            username = username.strip()
            error = profiles.validate_username(username)
            if error:
                return AuthResult(success=False, error=error)
            if profiles.is_username_taken(db, username):
                return AuthResult(success=False, error="Username already taken")

        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        user = User(
            id=str(uuid.uuid4()),
            email=email.lower().strip(),
            password_hash=password_hash,
            is_active=True,
        )
        db.add(user)
        db.flush()
        profile = profiles.provision(db, user.id, username, display_name)
        db.commit()
        db.refresh(profile)

        return self._result(user, profile)

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Authenticate an account by email and password."""
        user = db.query(User).filter(User.email.ilike(email.strip())).first()
        if not user:
            return AuthResult(success=False, error="Invalid email or password")

        if not user.is_active:
            return AuthResult(success=False, error="Account is deactivated")

        if not bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8")):
            return AuthResult(success=False, error="Invalid email or password")

        profile = get_profile_service().get_profile(db, user.id)
        if not profile:
            return AuthResult(success=False, error="Profile missing for this account")

        user.last_login_at = datetime.utcnow()
        db.commit()

        return self._result(user, profile)

    @staticmethod
    def _result(user: User, profile: Profile) -> AuthResult:
        return AuthResult(
            success=True,
            user_id=user.id,
            email=user.email,
            username=profile.username,
            display_name=profile.display_name,
        )


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
