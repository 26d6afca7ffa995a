# api/app/schemas/buddy.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class BuddyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    personality_type: str
    avatar: str = "default"
    chattiness: int = Field(5, ge=0, le=10)
    intelligence: int = Field(7, ge=0, le=10)
    empathy: int = Field(6, ge=0, le=10)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class BuddySettingsUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=64)
    avatar: str | None = None
    status: str | None = None
    personality_type: str | None = None
    chattiness: int | None = Field(None, ge=0, le=10)
    intelligence: int | None = Field(None, ge=0, le=10)
    empathy: int | None = Field(None, ge=0, le=10)
    settings: dict | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class BuddyResponse(BaseModel):
    id: uuid.UUID
    name: str
    personality_type: str
    avatar: str
    chattiness: int
    intelligence: int
    empathy: int
    personality: dict
    status: str
    friendship_score: int
    last_interaction: datetime | None = None
    stats: dict
    settings: dict
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BuddySettingsResponse(BaseModel):
    name: str
    avatar: str
    status: str
    personality_type: str
    chattiness: int
    intelligence: int
    empathy: int
    settings: dict

    class Config:
        from_attributes = True


class EventResponse(BaseModel):
    id: uuid.UUID
    event_type: str
    level: str
    source: str | None = None
    message: str | None = None
    details: dict
    created_at: datetime

    class Config:
        from_attributes = True
