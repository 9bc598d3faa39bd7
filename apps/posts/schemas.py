"""
Pydantic schemas for the Posts API.

Input and output shapes are separate: the write schema only knows the
fields a caller may set, so id and timestamps in a request body are
ignored instead of being copied onto the entity.
"""
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class PostWrite(BaseModel):
    """Fields accepted on create and (as a full replacement) on update."""
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags_to_empty(cls, value):
        return [] if value is None else value


class PostCreate(PostWrite):
    """Schema for creating a new post."""
    pass


class PostUpdate(PostWrite):
    """Schema for replacing a post. Absent tags clear the stored tags."""
    pass


class PostResponse(BaseModel):
    """Schema for post responses."""
    id: int
    title: str
    content: str
    category: str
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    class Config:
        from_attributes = True

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags_to_empty(cls, value: Optional[list[str]]):
        return [] if value is None else value

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        # Some backends (SQLite) hand back naive datetimes; stored values are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class HealthResponse(BaseModel):
    status: str
    service: str
    database: str
