from datetime import date, datetime
from pydantic import BaseModel, ConfigDict
from churchflow.models import EventCategory
from churchflow.schemas.activity import ActivityEntrySchema
from churchflow.schemas.common import MemberRef


# Filter Query Schemas
class AttendanceReportFilters(BaseModel):
    start_date: date | None = None
    end_date: date | None = None


# Response Schemas
class PeriodTotal(BaseModel):
    amount: float
    count: int


class DashboardEvent(BaseModel):
    id: int
    title: str
    start_date: datetime
    location: str | None = None
    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    total_members: int
    new_members_this_month: int
    total_events: int
    total_donations: int
    total_volunteers: int
    giving_this_month: float
    giving_last_month: float
    giving_change: float
    upcoming_events: list[DashboardEvent]
    recent_members: list[MemberRef]
    recent_activity: list[ActivityEntrySchema]


class FundBreakdown(BaseModel):
    fund_id: int
    fund_name: str
    amount: float
    count: int


class MethodBreakdown(BaseModel):
    payment_method: str
    amount: float
    count: int


class TopDonor(BaseModel):
    member_id: int
    name: str
    amount: float


class MonthlyAmount(BaseModel):
    month: str
    amount: float


class FinancialReportResponse(BaseModel):
    this_month: PeriodTotal
    last_month: PeriodTotal
    year_to_date: PeriodTotal
    monthly_change: float
    by_fund: list[FundBreakdown]
    by_method: list[MethodBreakdown]
    top_donors: list[TopDonor]
    monthly_trend: list[MonthlyAmount]


class EventTypeCount(BaseModel):
    category: EventCategory
    count: int


class EventAttendance(BaseModel):
    id: int
    title: str
    start_date: datetime
    check_in_count: int


class WeeklyCount(BaseModel):
    week: str
    count: int


class AttendanceReportResponse(BaseModel):
    start_date: date
    end_date: date
    total_check_ins: int
    unique_attendees: int
    this_month: int
    last_month: int
    monthly_change: float
    by_event_type: list[EventTypeCount]
    by_event: list[EventAttendance]
    weekly_trend: list[WeeklyCount]


class MembershipReportResponse(BaseModel):
    total_members: int
    by_status: dict[str, int]
    new_this_year: int
    new_this_month: int
    members_last_year: int
    yearly_growth: float
    age_groups: dict[str, int]


class GroupSize(BaseModel):
    id: int
    name: str
    category: str
    member_count: int
    capacity: int | None = None


class GroupsReportResponse(BaseModel):
    total_groups: int
    total_memberships: int
    average_size: float
    by_category: dict[str, int]
    groups: list[GroupSize]


class RoleHours(BaseModel):
    role_id: int
    role_name: str
    volunteers: int
    shifts: int
    hours: float


class VolunteerHours(BaseModel):
    volunteer_id: int
    name: str
    hours: float


class VolunteersReportResponse(BaseModel):
    total_volunteers: int
    by_status: dict[str, int]
    active_this_month: int
    hours_served: float
    average_hours: float
    by_role: list[RoleHours]
    top_volunteers: list[VolunteerHours]
