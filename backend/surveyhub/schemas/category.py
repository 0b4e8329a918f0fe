from __future__ import annotations

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    # Optional here so a missing name gets the category-specific message
    name: str | None = Field(None, max_length=200)
    description: str | None = None
    status: str = Field("active", max_length=20)
