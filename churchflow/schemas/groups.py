from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from churchflow.models import GroupCategory, GroupRole
from churchflow.schemas.common import MemberRef, not_blank


class GroupBase(BaseModel):
    name: str
    description: str | None = None
    category: GroupCategory = GroupCategory.small_group
    meeting_day: str | None = None
    meeting_time: str | None = None
    location: str | None = None
    leader_id: int | None = None
    capacity: int | None = None
    is_public: bool = True


# Filter Query Schemas
class GroupListFilters(BaseModel):
    category: GroupCategory | None = None
    search: str | None = None


class GroupMemberRemoveFilters(BaseModel):
    member_id: int


# Request Schemas
class GroupCreateRequest(GroupBase):
    @field_validator("name")
    def name_required(cls, v: str) -> str:
        return not_blank(v)


class GroupUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    category: GroupCategory | None = None
    meeting_day: str | None = None
    meeting_time: str | None = None
    location: str | None = None
    leader_id: int | None = None
    capacity: int | None = None
    is_public: bool | None = None


class GroupMemberAddRequest(BaseModel):
    member_id: int
    role: GroupRole = GroupRole.member


# Response Schemas
class GroupSchema(GroupBase):
    id: int
    leader: MemberRef | None = None
    member_count: int = 0
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class GroupListResponse(BaseModel):
    groups: list[GroupSchema]
    categories: list[GroupCategory]


class GroupMemberSchema(BaseModel):
    id: int
    member: MemberRef
    role: GroupRole
    joined_at: datetime
    model_config = ConfigDict(from_attributes=True)


class GroupDetailResponse(GroupSchema):
    members: list[GroupMemberSchema] = []
