from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from churchflow.models import EventCategory
from churchflow.schemas.common import UtcDatetime


class EventBase(BaseModel):
    title: str
    description: str | None = None
    location: str | None = None
    address: str | None = None
    category: EventCategory = EventCategory.other
    start_date: UtcDatetime
    end_date: UtcDatetime | None = None
    all_day: bool = False
    is_recurring: bool = False
    recurrence_rule: str | None = None
    requires_registration: bool = False
    max_attendees: int | None = None
    is_public: bool = True
    is_published: bool = True
    publish_to_website: bool = False
    enable_check_in: bool = False
    group_id: int | None = None


# Filter Query Schemas
class EventListFilters(BaseModel):
    upcoming: bool = False
    past: bool = False
    category: EventCategory | None = None


class ICalFilters(BaseModel):
    slug: str | None = None
    church_id: int | None = None


# Request Schemas
class EventCreateRequest(EventBase):
    @field_validator("title")
    def title_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class EventUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    location: str | None = None
    address: str | None = None
    category: EventCategory | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    all_day: bool | None = None
    is_recurring: bool | None = None
    recurrence_rule: str | None = None
    requires_registration: bool | None = None
    max_attendees: int | None = None
    is_public: bool | None = None
    is_published: bool | None = None
    publish_to_website: bool | None = None
    enable_check_in: bool | None = None
    group_id: int | None = None


# Response Schemas
class EventSchema(EventBase):
    id: int
    check_in_code: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class EventListItem(EventSchema):
    check_in_count: int = 0
