from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import MissionStatus


class MissionCreate(BaseModel):
    name: str
    start_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("name cannot be empty")
        return value.strip()


class Mission(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    status: MissionStatus
    start_date: date
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
