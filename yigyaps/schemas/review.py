import uuid
from datetime import datetime

from pydantic import Field

from yigyaps.schemas.common import CamelModel


class ReviewCreate(CamelModel):
    rating: int = Field(ge=1, le=5)
    title: str | None = Field(default=None, max_length=200)
    comment: str | None = Field(default=None, max_length=1000)


class ReviewUpdate(CamelModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, max_length=200)
    comment: str | None = Field(default=None, max_length=1000)


class ReviewOut(CamelModel):
    id: uuid.UUID
    package_id: uuid.UUID
    user_id: uuid.UUID
    user_name: str
    rating: int
    title: str | None
    comment: str | None
    verified: bool
    created_at: datetime
    updated_at: datetime
