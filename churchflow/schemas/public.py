from datetime import datetime
from pydantic import BaseModel, ConfigDict
from churchflow.models import EventCategory
from churchflow.schemas.website import PageSchema


class PublicChurchSchema(BaseModel):
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
    model_config = ConfigDict(from_attributes=True)


class NavItem(BaseModel):
    title: str
    slug: str
    model_config = ConfigDict(from_attributes=True)


class PublicEventSchema(BaseModel):
    id: int
    title: str
    description: str | None = None
    location: str | None = None
    address: str | None = None
    category: EventCategory
    start_date: datetime
    end_date: datetime | None = None
    all_day: bool
    is_recurring: bool
    recurrence_rule: str | None = None
    model_config = ConfigDict(from_attributes=True)


class PublicFundSchema(BaseModel):
    id: int
    name: str
    description: str | None = None
    goal: float | None = None
    raised: float
    is_default: bool
    model_config = ConfigDict(from_attributes=True)


class PublicHomeResponse(BaseModel):
    church: PublicChurchSchema
    navigation: list[NavItem]
    home_page: PageSchema | None = None
    upcoming_events: list[PublicEventSchema]


class PublicEventsResponse(BaseModel):
    church: PublicChurchSchema
    events: list[PublicEventSchema]
    ical_url: str


class PublicGiveResponse(BaseModel):
    church: PublicChurchSchema
    funds: list[PublicFundSchema]


class PublicPageResponse(BaseModel):
    church: PublicChurchSchema
    navigation: list[NavItem]
    page: PageSchema
