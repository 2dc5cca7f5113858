"""Account DTOs for the Service Layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RegisterUserDTO(BaseModel):
    """Self-registration input.  The email doubles as the login username."""

    model_config = ConfigDict(frozen=True)

    email: str = Field(max_length=150)
    password: str
    first_name: str = Field(default="", max_length=150)
    last_name: str = Field(default="", max_length=150)
