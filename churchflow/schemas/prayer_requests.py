from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from churchflow.models import PrayerStatus
from churchflow.schemas.common import MAX_PAGE_LIMIT, Pagination, not_blank


# Filter Query Schemas
class PrayerRequestListFilters(BaseModel):
    status: PrayerStatus | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=MAX_PAGE_LIMIT)


# Request Schemas
class PrayerRequestCreateRequest(BaseModel):
    title: str
    description: str
    category: str | None = None
    is_private: bool = False
    is_anonymous: bool = False

    @field_validator("title", "description")
    def required_text(cls, v: str) -> str:
        return not_blank(v)


class PrayerRequestUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    status: PrayerStatus | None = None
    is_private: bool | None = None
    is_anonymous: bool | None = None


# Response Schemas
class PrayerRequestSchema(BaseModel):
    id: int
    title: str
    description: str
    category: str | None = None
    status: PrayerStatus
    is_private: bool
    is_anonymous: bool
    prayer_count: int
    answered_at: datetime | None = None
    created_at: datetime
    member_id: int | None = None
    member_name: str | None = None
    model_config = ConfigDict(from_attributes=True)


class PrayerRequestListResponse(BaseModel):
    items: list[PrayerRequestSchema]
    pagination: Pagination
