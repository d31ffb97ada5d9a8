from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from churchflow.models import ChurchRole
from churchflow.schemas.auth import validate_email


class ChurchMembershipSchema(BaseModel):
    church_id: int
    church_name: str
    church_slug: str
    role: ChurchRole


class UserProfileResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime
    church: ChurchMembershipSchema | None = None

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None

    @field_validator("name")
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip() if v else v

    @field_validator("email")
    def email_format(cls, v: str | None) -> str | None:
        return validate_email(v) if v is not None else v
