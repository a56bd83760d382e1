"""Schemas for description template management."""

from typing import Optional

from pydantic import BaseModel, Field


class TemplateCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: Optional[str] = Field(None, description="Defaults to 'section'.")
    is_default: bool = False


class TemplateUpdateRequest(BaseModel):
    name: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    is_default: Optional[bool] = None


__all__ = ["TemplateCreateRequest", "TemplateUpdateRequest"]
