"""Pydantic schemas for the identity and admin endpoints."""

from datetime import datetime

from pydantic import Field

from eisenhower.schemas.base import ApiModel


class AssertionLogin(ApiModel):
    assertion: str = Field(..., min_length=1)


class VerifyResponse(ApiModel):
    status: str
    email: str


class AccessToken(ApiModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class AdminEmail(ApiModel):
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)


class MailFailure(ApiModel):
    user_id: int
    message: str


class BulkMailRead(ApiModel):
    sent: list[int]
    errors: list[MailFailure]
