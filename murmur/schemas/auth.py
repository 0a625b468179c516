"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    username: str | None = None
    display_name: str | None = None


class TokenResponse(BaseModel):
    token: str
    email: str
    username: str
    display_name: str | None
