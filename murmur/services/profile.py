"""Profile provisioning and lookup."""

import re

from sqlalchemy import func
from sqlalchemy.orm import Session

from murmur.models.profile import Profile

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,32}$")
DEFAULT_DISPLAY_NAME = "Anonymous User"


class ProfileService:
    """Owns the profile rows behind share links."""

    def validate_username(self, username: str) -> str | None:
        """Return an error message for an invalid handle, or None if it is acceptable."""
        if not USERNAME_PATTERN.match(username):
            return "Username must be 3-32 characters of letters, digits or underscores"
        return None

    def is_username_taken(self, db: Session, username: str) -> bool:
        """Case-insensitive duplicate check. Underscores are literal, not wildcards."""
        return db.query(Profile.id).filter(func.lower(Profile.username) == username.lower()).first() is not None

    def provision(self, db: Session, user_id: str, username: str | None, display_name: str | None) -> Profile:
        """Add the profile row for a freshly created account. The caller commits.

        Missing signup metadata falls back to ``user_<first 8 chars of id>`` and ``Anonymous User``.
        """
        profile = Profile(
            id=user_id,
            username=(username or "").strip() or f"user_{user_id.replace('-', '')[:8]}",
            display_name=(display_name or "").strip() or DEFAULT_DISPLAY_NAME,
        )
        db.add(profile)
        return profile

    def get_profile(self, db: Session, profile_id: str) -> Profile | None:
        return db.query(Profile).filter(Profile.id == profile_id).first()

    def get_profile_by_handle(self, db: Session, username: str) -> Profile | None:
        """Look up the recipient behind a share link."""
        return db.query(Profile).filter(Profile.username == username).first()

    def update_display_name(self, db: Session, profile: Profile, display_name: str) -> Profile:
        """Change the display name. The username is never touched."""
        profile.display_name = display_name.strip()
        db.commit()
        db.refresh(profile)
        return profile

    def build_share_link(self, base_url: str, profile: Profile) -> str:
        return f"{base_url.rstrip('/')}/send/{profile.username}"


_profile_service: ProfileService | None = None


def get_profile_service() -> ProfileService:
    """Get singleton profile service instance."""
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService()
    return _profile_service
