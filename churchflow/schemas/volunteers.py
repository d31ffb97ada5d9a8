from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from churchflow.models import ShiftStatus, VolunteerStatus
from churchflow.schemas.common import (
    MAX_PAGE_LIMIT,
    MemberRef,
    Pagination,
    UtcDatetime,
    not_blank,
)


# Filter Query Schemas
class VolunteerListFilters(BaseModel):
    search: str | None = None
    role_id: int | None = None
    status: VolunteerStatus | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=MAX_PAGE_LIMIT)


class ShiftListFilters(BaseModel):
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    role_id: int | None = None


# Request Schemas
class VolunteerCreateRequest(BaseModel):
    member_id: int
    skills: list[str] = []
    availability: str | None = None
    preferred_roles: list[str] = []
    background_check: bool = False
    background_check_date: date | None = None
    training_completed: list[str] = []
    notes: str | None = None


class VolunteerUpdateRequest(BaseModel):
    skills: list[str] | None = None
    availability: str | None = None
    preferred_roles: list[str] | None = None
    background_check: bool | None = None
    background_check_date: date | None = None
    training_completed: list[str] | None = None
    status: VolunteerStatus | None = None
    notes: str | None = None


class RoleCreateRequest(BaseModel):
    name: str
    description: str | None = None
    ministry: str | None = None
    requires_background_check: bool = False
    required_training: list[str] = []

    @field_validator("name")
    def name_required(cls, v: str) -> str:
        return not_blank(v)


class ShiftCreateRequest(BaseModel):
    role_id: int
    event_id: int | None = None
    start_time: UtcDatetime
    end_time: UtcDatetime
    status: ShiftStatus = ShiftStatus.scheduled
    notes: str | None = None


# Response Schemas
class RoleSchema(BaseModel):
    id: int
    name: str
    description: str | None = None
    ministry: str | None = None
    requires_background_check: bool
    required_training: list[str]
    model_config = ConfigDict(from_attributes=True)


class RoleRef(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class ShiftSchema(BaseModel):
    id: int
    volunteer_id: int
    role: RoleRef
    event_id: int | None = None
    start_time: datetime
    end_time: datetime
    status: ShiftStatus
    notes: str | None = None
    model_config = ConfigDict(from_attributes=True)


class ScheduleShiftSchema(ShiftSchema):
    volunteer_name: str


class VolunteerSchema(BaseModel):
    id: int
    member: MemberRef
    skills: list[str]
    availability: str | None = None
    preferred_roles: list[str]
    background_check: bool
    background_check_date: date | None = None
    training_completed: list[str]
    status: VolunteerStatus
    notes: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class VolunteerListItem(VolunteerSchema):
    upcoming_shifts: list[ShiftSchema] = []


class VolunteerListResponse(BaseModel):
    items: list[VolunteerListItem]
    pagination: Pagination


class VolunteerDetailResponse(VolunteerSchema):
    shifts: list[ShiftSchema] = []
    total_hours: float = 0
