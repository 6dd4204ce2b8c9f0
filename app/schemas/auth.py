"""Pydantic schemas for sign-up form pre-validation."""

from pydantic import BaseModel, Field


class CredentialCheckRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=128)
    display_name: str = Field("", max_length=64)


class CredentialCheckResponse(BaseModel):
    """Outcome of checking sign-up fields before an account is created."""

    valid: bool
    errors: list[str] = Field(default_factory=list, description="One message per failed rule.")
    display_name: str = Field("", description="Display name with markup characters escaped.")
