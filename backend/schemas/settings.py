from typing import Literal

from pydantic import BaseModel, Field, field_validator

from levels import DifficultyLevel, normalize_level


class UserSettings(BaseModel):
    difficulty_level: DifficultyLevel = "A2"
    speaking_speed: float = Field(default=1.0, ge=0.5, le=2.0)
    accent: Literal["american", "british"] = "american"
    voice_gender: Literal["male", "female"] = "female"

    model_config = {"from_attributes": True}

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def upper_level(cls, value):
        if isinstance(value, str):
            return normalize_level(value) or value
        return value
