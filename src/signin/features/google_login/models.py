"""Pydantic models for the Google sign-in callback."""

from pydantic import BaseModel, Field


class GoogleCallbackRequest(BaseModel):
    """Request model for the Google callback. One of the two fields is required."""

    code: str | None = Field(None, description="Authorization code from the Google redirect")
    id_token: str | None = Field(None, description="ID token obtained by the client directly")

    class Config:
        """Pydantic config."""

        json_schema_extra = {"example": {"code": "4/0AX4XfWh..."}}
