from datetime import timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hostca.utils.duration import parse_duration


class SigningPolicy(BaseModel):
    """Fixed issuance parameters, loaded once at startup."""
    model_config = ConfigDict(frozen=True)

    duration: timedelta
    strip_suffix: Optional[str] = None
    aliases: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("duration", mode="before")
    @classmethod
    def parse_duration_string(cls, v):
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @field_validator("duration")
    @classmethod
    def duration_positive(cls, v: timedelta) -> timedelta:
        if v.total_seconds() < 1:
            raise ValueError("certificate duration must be at least one second")
        return v

    @field_validator("strip_suffix")
    @classmethod
    def empty_suffix_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None
