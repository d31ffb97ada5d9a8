from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from churchflow.models import SubscriptionTier, SubscriptionStatus

AVAILABLE_MODULES = {
    "members",
    "events",
    "donations",
    "checkin",
    "communications",
    "groups",
    "volunteers",
    "website",
    "sermons",
    "prayer",
}


class ChurchSchema(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    timezone: str
    logo: str | None = None
    primary_color: str | None = None
    subscription_tier: SubscriptionTier
    subscription_status: SubscriptionStatus
    trial_ends_at: datetime | None = None
    enabled_modules: list[str]
    max_members: int
    max_storage: int

    model_config = ConfigDict(from_attributes=True)


class OnboardingRequest(BaseModel):
    church_name: str
    denomination: str | None = None
    website: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    timezone: str | None = None
    team_size: str | None = None
    average_attendance: str | None = None

    @field_validator("church_name")
    def church_name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Church name is required")
        return v.strip()


class ChurchUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    website: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    timezone: str | None = None
    logo: str | None = None
    primary_color: str | None = None
    enabled_modules: list[str] | None = None

    @field_validator("name")
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Church name is required")
        return v.strip() if v else v

    @field_validator("enabled_modules")
    def known_modules(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        unknown = set(v) - AVAILABLE_MODULES
        if unknown:
            raise ValueError(f"Unknown modules: {', '.join(sorted(unknown))}")
        return v
