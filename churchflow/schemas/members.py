from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from churchflow.models import MembershipStatus, Gender, GroupCategory
from churchflow.schemas.common import MAX_PAGE_LIMIT, Pagination
from churchflow.schemas.auth import validate_email


# Shared Schemas
class MemberBase(BaseModel):
    first_name: str
    last_name: str
    middle_name: str | None = None
    email: str | None = None
    phone: str | None = None
    alternate_phone: str | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    marital_status: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    membership_status: MembershipStatus = MembershipStatus.visitor
    membership_date: date | None = None
    baptism_date: date | None = None
    family_id: int | None = None
    family_role: str | None = None
    skills: list[str] = []
    interests: list[str] = []
    notes: str | None = None
    photo: str | None = None


# Filter Query Schemas
class MemberListFilters(BaseModel):
    search: str | None = None
    status: MembershipStatus | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=MAX_PAGE_LIMIT)


# Request Schemas
class MemberCreateRequest(MemberBase):
    @field_validator("first_name", "last_name")
    def name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("First name and last name are required")
        return v.strip()

    @field_validator("email", mode="before")
    def email_format(cls, v):
        # Forms send "" for an empty optional field
        if v in (None, ""):
            return None
        return validate_email(v)


class MemberUpdateRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    alternate_phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    date_of_birth: date | None = None
    membership_date: date | None = None
    membership_status: MembershipStatus | None = None
    family_id: int | None = None
    family_role: str | None = None
    notes: str | None = None
    photo: str | None = None
    is_active: bool | None = None

    @field_validator("email", mode="before")
    def email_format(cls, v):
        if v in (None, ""):
            return None
        return validate_email(v)


# Response Schemas
class FamilySchema(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class MemberSchema(MemberBase):
    id: int
    is_active: bool
    giving_badge: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MemberListItem(MemberSchema):
    family: FamilySchema | None = None
    donation_count: int = 0
    attendance_count: int = 0


class MemberListResponse(BaseModel):
    items: list[MemberListItem]
    pagination: Pagination


class FamilyRelative(BaseModel):
    id: int
    first_name: str
    last_name: str
    family_role: str | None = None
    model_config = ConfigDict(from_attributes=True)


class MemberGroupSchema(BaseModel):
    group_id: int
    name: str
    category: GroupCategory
    role: str


class MemberDonationSchema(BaseModel):
    id: int
    amount: float
    fund_name: str
    donated_at: datetime


class MemberAttendanceSchema(BaseModel):
    id: int
    date: date
    event_title: str | None = None


class MemberDetailResponse(MemberSchema):
    family: FamilySchema | None = None
    relatives: list[FamilyRelative] = []
    groups: list[MemberGroupSchema] = []
    recent_donations: list[MemberDonationSchema] = []
    recent_attendance: list[MemberAttendanceSchema] = []
    is_volunteer: bool = False
