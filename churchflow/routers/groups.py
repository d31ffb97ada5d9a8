import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import (
    ChurchUser,
    Communication,
    Event,
    Group,
    GroupMember,
    Member,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.groups import (
    GroupCreateRequest,
    GroupDetailResponse,
    GroupListFilters,
    GroupListResponse,
    GroupMemberAddRequest,
    GroupMemberRemoveFilters,
    GroupMemberSchema,
    GroupSchema,
    GroupUpdateRequest,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def _leader_in_church(db: Session, church_id: int, leader_id: int) -> None:
    leader = scoped_query(db, Member, church_id).filter(Member.id == leader_id).first()
    if not leader:
        raise HTTPException(
            status_code=400, detail="Leader must be a member of this church"
        )


def _member_count(db: Session, group_id: int) -> int:
    return db.query(GroupMember).filter(GroupMember.group_id == group_id).count()


def _group_payload(db: Session, group: Group) -> dict:
    item = GroupSchema.model_validate(group).model_dump()
    item["member_count"] = _member_count(db, group.id)
    return item


@router.get("", response_model=GroupListResponse)
def list_groups(
    filter_query: Annotated[GroupListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    query = scoped_query(db, Group, church_id).options(joinedload(Group.leader))

    if filter_query.category is not None:
        query = query.filter(Group.category == filter_query.category)
    if filter_query.search:
        pattern = f"%{filter_query.search.strip()}%"
        query = query.filter(
            or_(Group.name.ilike(pattern), Group.description.ilike(pattern))
        )

    groups = query.order_by(Group.name.asc()).all()
    counts = dict(
        db.query(GroupMember.group_id, func.count(GroupMember.id))
        .filter(GroupMember.group_id.in_([g.id for g in groups]))
        .group_by(GroupMember.group_id)
        .all()
    )
    categories = [
        row[0]
        for row in scoped_query(db, Group, church_id)
        .with_entities(Group.category)
        .distinct()
        .order_by(Group.category.asc())
        .all()
    ]

    items = []
    for group in groups:
        item = GroupSchema.model_validate(group).model_dump()
        item["member_count"] = counts.get(group.id, 0)
        items.append(item)
    return {"groups": items, "categories": categories}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=GroupSchema)
def create_group(
    data: GroupCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    if data.leader_id is not None:
        _leader_in_church(db, church_id, data.leader_id)

    existing = (
        scoped_query(db, Group, church_id).filter(Group.name == data.name).first()
    )
    if existing:
        raise HTTPException(
            status_code=400, detail="A group with this name already exists"
        )

    group = Group(church_id=church_id, **data.model_dump())
    db.add(group)
    db.flush()

    log_activity(
        db, church_id, church_user.user_id, "GROUP_CREATED", "Group", group.id,
        {"name": group.name},
    )
    db.commit()
    db.refresh(group)
    return _group_payload(db, group)


@router.get("/{group_id}", response_model=GroupDetailResponse)
def get_group(
    group_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    group = get_scoped_or_404(db, Group, church_user.church_id, group_id, "Group")
    memberships = (
        db.query(GroupMember)
        .options(joinedload(GroupMember.member))
        .filter(GroupMember.group_id == group.id)
        .order_by(GroupMember.joined_at.asc())
        .all()
    )
    detail = _group_payload(db, group)
    detail["members"] = [GroupMemberSchema.model_validate(m) for m in memberships]
    return detail


@router.patch("/{group_id}", response_model=GroupSchema)
def update_group(
    group_id: int,
    data: GroupUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    group = get_scoped_or_404(db, Group, church_id, group_id, "Group")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("leader_id") is not None:
        _leader_in_church(db, church_id, updates["leader_id"])

    for field, value in updates.items():
        if value is None and field in ("name", "category", "is_public"):
            continue
        setattr(group, field, value)
    log_activity(
        db, church_id, church_user.user_id, "GROUP_UPDATED", "Group", group.id,
        {"updated_fields": sorted(updates)},
    )

    db.commit()
    db.refresh(group)
    return _group_payload(db, group)


@router.delete("/{group_id}", response_model=SuccessResponse)
def delete_group(
    group_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    group = get_scoped_or_404(db, Group, church_id, group_id, "Group")

    for model in (Event, Communication):
        scoped_query(db, model, church_id).filter(model.group_id == group.id).update(
            {model.group_id: None}, synchronize_session=False
        )

    db.delete(group)
    log_activity(
        db, church_id, church_user.user_id, "GROUP_DELETED", "Group", group_id,
        {"name": group.name},
    )
    db.commit()
    return {"success": True}


# --- Group members ---
@router.get("/{group_id}/members", response_model=list[GroupMemberSchema])
def list_group_members(
    group_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    group = get_scoped_or_404(db, Group, church_user.church_id, group_id, "Group")
    return (
        db.query(GroupMember)
        .join(Member, GroupMember.member_id == Member.id)
        .options(joinedload(GroupMember.member))
        .filter(GroupMember.group_id == group.id)
        .order_by(Member.last_name.asc(), Member.first_name.asc())
        .all()
    )


@router.post(
    "/{group_id}/members",
    status_code=status.HTTP_201_CREATED,
    response_model=GroupMemberSchema,
)
def add_group_member(
    group_id: int,
    data: GroupMemberAddRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    group = get_scoped_or_404(db, Group, church_id, group_id, "Group")
    member = get_scoped_or_404(db, Member, church_id, data.member_id, "Member")

    existing = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group.id, GroupMember.member_id == member.id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=400, detail="Member is already in this group")

    if group.capacity and _member_count(db, group.id) >= group.capacity:
        raise HTTPException(status_code=400, detail="Group is at capacity")

    membership = GroupMember(group_id=group.id, member_id=member.id, role=data.role)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


@router.delete("/{group_id}/members", response_model=SuccessResponse)
def remove_group_member(
    group_id: int,
    filter_query: Annotated[GroupMemberRemoveFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    group = get_scoped_or_404(db, Group, church_user.church_id, group_id, "Group")
    membership = (
        db.query(GroupMember)
        .filter(
            GroupMember.group_id == group.id,
            GroupMember.member_id == filter_query.member_id,
        )
        .first()
    )
    if not membership:
        raise HTTPException(status_code=404, detail="Member is not in this group")

    db.delete(membership)
    db.commit()
    return {"success": True}
