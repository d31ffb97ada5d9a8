from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from churchflow.schemas.common import MAX_PAGE_LIMIT, Pagination


# Filter Query Schemas
class ActivityListFilters(BaseModel):
    entity_type: str | None = None
    action: str | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=MAX_PAGE_LIMIT)


# Response Schemas
class ActivityUser(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class ActivityEntrySchema(BaseModel):
    id: int
    user_id: int | None = None
    user: ActivityUser | None = None
    action: str
    entity_type: str
    entity_id: int | None = None
    details: dict
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ActivityListResponse(BaseModel):
    items: list[ActivityEntrySchema]
    pagination: Pagination
