"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from murmur.database import get_db
from murmur.rate_limit import limiter
from murmur.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from murmur.services.auth import AuthResult, get_auth_service
from murmur.services.jwt import get_jwt_service

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def issue_token(result: AuthResult) -> str:
    """Sign a session token for a successful auth result."""
    return get_jwt_service().create_token(
        user_id=result.user_id,  # type: ignore[arg-type]
        email=result.email,  # type: ignore[arg-type]
        username=result.username,  # type: ignore[arg-type]
        display_name=result.display_name,
    )


def _token_response(result: AuthResult) -> TokenResponse:
    return TokenResponse(
        token=issue_token(result),
        email=result.email,  # type: ignore[arg-type]
        username=result.username,  # type: ignore[arg-type]
        display_name=result.display_name,
    )


@router.post("/register", response_model=TokenResponse)
@limiter.limit("5/minute")
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Register a new account; its profile and share link are provisioned immediately."""
    result = get_auth_service().register(db, body.email, body.password, body.username, body.display_name)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return _token_response(result)


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Authenticate and receive a JWT token."""
    result = get_auth_service().authenticate(db, body.email, body.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error)
    return _token_response(result)


@router.get("/verify")
def verify_token(token: str) -> dict:
    """Verify a JWT token and return its payload."""
    payload = get_jwt_service().decode_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return {
        "valid": True,
        "user_id": payload["sub"],
        "email": payload["email"],
        "username": payload["username"],
        "display_name": payload.get("displayName"),
    }
