"""Pydantic schemas for the gas ticker API."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FREQUENCY_SECONDS = 60


class GasRequest(BaseModel):
    """Body of a request to start watching a network's gas price."""

    model_config = ConfigDict(populate_by_name=True)

    network: str = ""
    token: str = Field(default="", alias="discord_bot_token")
    nickname: bool = Field(default=False, alias="set_nickname")
    frequency: Optional[int] = Field(default=DEFAULT_FREQUENCY_SECONDS, ge=0)

    @field_validator("frequency", mode="after")
    @classmethod
    def _default_frequency(cls, value: Optional[int]) -> int:
        # runs after coercion, so "0", 0.0 and null all mean "use the default"
        if not value:
            return DEFAULT_FREQUENCY_SECONDS
        return value


class GasEntryOut(BaseModel):
    """Credential-free view of a watched network."""

    network: str
    set_nickname: bool
    frequency: int
