"""Profile API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from murmur.database import get_db
from murmur.dependencies import CurrentUser, get_base_url, get_current_user
from murmur.schemas.profile import ProfileResponse, ProfileUpdateRequest, PublicProfileResponse
from murmur.services.profile import get_profile_service

router = APIRouter(prefix="/api/v1", tags=["Profiles"])


@router.get("/profile", response_model=ProfileResponse)
def get_own_profile(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Profile of the signed-in recipient, with their share link."""
    service = get_profile_service()
    profile = service.get_profile(db, user.user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ProfileResponse(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        share_link=service.build_share_link(get_base_url(request), profile),
    )


@router.patch("/profile", response_model=ProfileResponse)
def update_own_profile(
    request: Request,
    body: ProfileUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Change the display name. Usernames cannot be changed."""
    service = get_profile_service()
    profile = service.get_profile(db, user.user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    profile = service.update_display_name(db, profile, body.display_name)
    return ProfileResponse(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        share_link=service.build_share_link(get_base_url(request), profile),
    )


@router.get("/profiles/{username}", response_model=PublicProfileResponse)
def get_public_profile(username: str, db: Session = Depends(get_db)) -> PublicProfileResponse:
    """Public lookup used by the send page."""
    profile = get_profile_service().get_profile_by_handle(db, username)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return PublicProfileResponse.model_validate(profile)
