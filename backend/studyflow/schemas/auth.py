"""Authentication schemas."""

from pydantic import Field

from studyflow.schemas.base import BaseSchema


class GoogleAuthRequest(BaseSchema):
    """Request schema for Google sign-in."""

    id_token: str = Field(..., description="Google id_token from the client's popup sign-in")


class TokenResponse(BaseSchema):
    """Response schema for successful authentication."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiry in seconds")
