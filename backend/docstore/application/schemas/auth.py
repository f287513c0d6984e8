"""Pydantic DTOs (Data Transfer Objects) for the identity endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class UserCredentials(BaseModel):
    """Body of register and login requests.

    The identity field name is configurable, so every extra field is kept
    and passed on as-is; only ``password`` is declared.
    """

    password: str | None = Field(None, examples=["123456"])

    model_config = {
        "extra": "allow",
        "json_schema_extra": {"examples": [{"email": "peter@abv.bg", "password": "123456"}]},
    }

    def as_body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
