from datetime import datetime
from typing import Annotated
from pydantic import AfterValidator, BaseModel
from churchflow.utils.dates import as_utc

MAX_PAGE_LIMIT = 100

# Incoming datetimes are converted to UTC; naive values are taken as UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class MessageResponse(BaseModel):
    message: str


class SuccessResponse(BaseModel):
    success: bool = True


class MemberRef(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str | None = None

    model_config = {"from_attributes": True}


def not_blank(v: str) -> str:
    """Shared validator body for required free-text fields."""
    if not v or not v.strip():
        raise ValueError("must not be blank")
    return v.strip()
