from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import Category


class CategoryLimit(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: Category
    daily_limit: Decimal = Field(Decimal("0"), ge=0)
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def unlimited(self) -> bool:
        return self.daily_limit == 0


class CategoryLimitUpdate(BaseModel):
    daily_limit: Decimal = Field(
        ..., ge=0, description="Daily ceiling for the category; 0 disables the limit"
    )
