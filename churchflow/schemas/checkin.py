import datetime as dt
from pydantic import BaseModel, ConfigDict, Field
from churchflow.models import CheckInMethod
from churchflow.schemas.common import (
    MAX_PAGE_LIMIT,
    MemberRef,
    Pagination,
    UtcDatetime,
)


# Filter Query Schemas
class CheckInListFilters(BaseModel):
    event_id: int | None = None
    date: dt.date | None = None
    is_child_check_in: bool | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=MAX_PAGE_LIMIT)


class AttendanceListFilters(BaseModel):
    event_id: int | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None


# Request Schemas
class CheckInCreateRequest(BaseModel):
    member_id: int
    event_id: int | None = None
    is_child_check_in: bool = False
    parent_name: str | None = None
    notes: str | None = None
    method: CheckInMethod = CheckInMethod.manual
    # Set when a queued offline check-in is replayed
    check_in_time: UtcDatetime | None = None


class CheckInUpdateRequest(BaseModel):
    check_out_time: UtcDatetime | None = None
    notes: str | None = None


class AttendanceCreateRequest(BaseModel):
    member_id: int
    event_id: int | None = None
    date: dt.date | None = None
    check_in_time: UtcDatetime | None = None


# Response Schemas
class EventRef(BaseModel):
    id: int
    title: str
    model_config = ConfigDict(from_attributes=True)


class CheckInSchema(BaseModel):
    id: int
    member: MemberRef
    event: EventRef | None = None
    check_in_time: dt.datetime
    check_out_time: dt.datetime | None = None
    checked_out_by: int | None = None
    method: CheckInMethod
    is_child_check_in: bool
    security_code: str | None = None
    parent_name: str | None = None
    notes: str | None = None
    model_config = ConfigDict(from_attributes=True)


class CheckInListResponse(BaseModel):
    items: list[CheckInSchema]
    pagination: Pagination


class AttendanceSchema(BaseModel):
    id: int
    member: MemberRef
    event_id: int | None = None
    date: dt.date
    check_in_time: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)
