from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from churchflow.models import CommunicationStatus, MessageChannel
from churchflow.schemas.common import (
    MAX_PAGE_LIMIT,
    Pagination,
    UtcDatetime,
    not_blank,
)
from churchflow.utils.messaging import RECIPIENT_TYPES


def _recipient_type(v: str) -> str:
    if v not in RECIPIENT_TYPES:
        raise ValueError(f"recipient_type must be one of {', '.join(RECIPIENT_TYPES)}")
    return v


# Filter Query Schemas
class CommunicationListFilters(BaseModel):
    status: CommunicationStatus | None = None
    channel: MessageChannel | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=MAX_PAGE_LIMIT)


# Request Schemas
class CommunicationCreateRequest(BaseModel):
    channel: MessageChannel = MessageChannel.email
    subject: str
    content: str
    recipient_type: str = "all"
    group_id: int | None = None
    status: CommunicationStatus = CommunicationStatus.draft
    scheduled_for: UtcDatetime | None = None

    @field_validator("subject", "content")
    def required_text(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("recipient_type")
    def valid_recipient_type(cls, v: str) -> str:
        return _recipient_type(v)


class CommunicationUpdateRequest(BaseModel):
    channel: MessageChannel | None = None
    subject: str | None = None
    content: str | None = None
    recipient_type: str | None = None
    group_id: int | None = None
    status: CommunicationStatus | None = None
    scheduled_for: UtcDatetime | None = None

    @field_validator("recipient_type")
    def valid_recipient_type(cls, v: str | None) -> str | None:
        return v if v is None else _recipient_type(v)


class TemplateCreateRequest(BaseModel):
    name: str
    category: str | None = None
    channel: MessageChannel = MessageChannel.email
    subject: str | None = None
    content: str

    @field_validator("name", "content")
    def required_text(cls, v: str) -> str:
        return not_blank(v)


# Response Schemas
class CommunicationSchema(BaseModel):
    id: int
    channel: MessageChannel
    subject: str
    content: str
    recipient_type: str
    group_id: int | None = None
    status: CommunicationStatus
    recipient_count: int
    created_by: int | None = None
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CommunicationListResponse(BaseModel):
    items: list[CommunicationSchema]
    pagination: Pagination


class CommunicationSummaryResponse(BaseModel):
    sent_count: int
    draft_count: int
    scheduled_count: int
    recipients_reached: int


class TemplateSchema(BaseModel):
    id: int
    name: str
    category: str | None = None
    channel: MessageChannel
    subject: str | None = None
    content: str
    variables: list[str]
    model_config = ConfigDict(from_attributes=True)
