from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from churchflow.models import PaymentMethod, PaymentStatus
from churchflow.schemas.common import (
    MAX_PAGE_LIMIT,
    MemberRef,
    Pagination,
    UtcDatetime,
    not_blank,
)


# Filter Query Schemas
class DonationListFilters(BaseModel):
    search: str | None = None
    fund_id: int | None = None
    payment_method: PaymentMethod | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=MAX_PAGE_LIMIT)


# Request Schemas
class DonationCreateRequest(BaseModel):
    amount: float
    payment_method: PaymentMethod = PaymentMethod.cash
    donor_name: str | None = None
    donor_email: str | None = None
    member_id: int | None = None
    fund_id: int | None = None
    notes: str | None = None
    is_anonymous: bool = False
    is_recurring: bool = False
    recurring_frequency: str | None = None
    check_number: str | None = None
    transaction_id: str | None = None
    donated_at: UtcDatetime | None = None

    @field_validator("amount")
    def amount_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Valid donation amount is required")
        return v


class DonationUpdateRequest(BaseModel):
    amount: float | None = None
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus | None = None
    donor_name: str | None = None
    donor_email: str | None = None
    member_id: int | None = None
    fund_id: int | None = None
    notes: str | None = None
    is_recurring: bool | None = None
    recurring_frequency: str | None = None
    donated_at: UtcDatetime | None = None

    @field_validator("amount")
    def amount_positive(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("Valid donation amount is required")
        return v


class FundCreateRequest(BaseModel):
    name: str
    description: str | None = None
    goal: float | None = None
    is_default: bool = False

    @field_validator("name")
    def name_required(cls, v: str) -> str:
        return not_blank(v)


# Response Schemas
class FundRef(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class FundSchema(FundRef):
    description: str | None = None
    goal: float | None = None
    raised: float
    is_default: bool
    is_active: bool
    donation_count: int = 0


class DonationSchema(BaseModel):
    id: int
    amount: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    donor_name: str | None = None
    donor_email: str | None = None
    member_id: int | None = None
    fund_id: int
    notes: str | None = None
    is_anonymous: bool
    is_recurring: bool
    recurring_frequency: str | None = None
    transaction_id: str | None = None
    donated_at: datetime
    member: MemberRef | None = None
    fund: FundRef
    model_config = ConfigDict(from_attributes=True)


class DonationListResponse(BaseModel):
    items: list[DonationSchema]
    pagination: Pagination


class DonationSummaryResponse(BaseModel):
    this_month: float
    last_month: float
    year_to_date: float
    donor_count: int
    recurring_count: int
