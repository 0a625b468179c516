"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, Response

from murmur.config import get_settings
from murmur.services.jwt import get_jwt_service

AUTH_COOKIE_NAME = "murmur_auth_token"
COOKIE_MAX_AGE = 8 * 60 * 60  # 8 hours


@dataclass
class CurrentUser:
    """Authenticated recipient context."""

    user_id: str
    email: str
    username: str
    display_name: str | None


def _user_from_token(token: str | None) -> CurrentUser | None:
    if not token:
        return None
    payload = get_jwt_service().decode_token(token)
    if not payload:
        return None
    return CurrentUser(
        user_id=payload["sub"],
        email=payload["email"],
        username=payload["username"],
        display_name=payload.get("displayName"),
    )


def get_current_user(request: Request) -> CurrentUser:
    """Extract and validate user from Bearer token or cookie. Raises 401 if invalid."""
    token: str | None = None

    # Check Authorization header first
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[7:]

    # Fall back to cookie
    if not token:
        token = request.cookies.get(AUTH_COOKIE_NAME)

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = _user_from_token(token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def get_current_user_from_cookie(request: Request) -> CurrentUser | None:
    """Extract user from cookie, return None if missing or invalid."""
    return _user_from_token(request.cookies.get(AUTH_COOKIE_NAME))


def require_web_auth(request: Request) -> CurrentUser:
    """Require authentication for web routes. Raises 401 to trigger redirect."""
    user = get_current_user_from_cookie(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def get_base_url(request: Request) -> str:
    """Public origin used for share links and storage URLs."""
    return get_settings().PUBLIC_BASE_URL or str(request.base_url).rstrip("/")


def set_auth_cookie(response: Response, token: str) -> None:
    """Set the authentication cookie."""
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=False,
        max_age=COOKIE_MAX_AGE,
    )


def clear_auth_cookie(response: Response) -> None:
    """Clear the authentication cookie."""
    response.delete_cookie(key=AUTH_COOKIE_NAME)
