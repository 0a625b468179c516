"""Pydantic schemas for profile endpoints."""

from pydantic import BaseModel, Field


class PublicProfileResponse(BaseModel):
    username: str
    display_name: str | None

    model_config = {"from_attributes": True}


class ProfileResponse(PublicProfileResponse):
    id: str
    share_link: str


class ProfileUpdateRequest(BaseModel):
    display_name: str = Field(min_length=1, max_length=256)
