import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import (
    Attendance,
    Church,
    ChurchUser,
    Donation,
    Family,
    Group,
    GroupMember,
    Member,
    PrayerRequest,
    Volunteer,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.members import (
    FamilyRelative,
    FamilySchema,
    MemberCreateRequest,
    MemberDetailResponse,
    MemberListFilters,
    MemberListResponse,
    MemberSchema,
    MemberUpdateRequest,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.members import build_member_search, count_members
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_LIMIT = 10


def _email_taken(db: Session, church_id: int, email: str, exclude_id: int | None = None):
    query = scoped_query(db, Member, church_id).filter(
        func.lower(Member.email) == email.lower()
    )
    if exclude_id is not None:
        query = query.filter(Member.id != exclude_id)
    return db.query(query.exists()).scalar()


@router.get("", response_model=MemberListResponse)
def list_members(
    filter_query: Annotated[MemberListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    query = (
        scoped_query(db, Member, church_user.church_id)
        .options(joinedload(Member.family))
        .filter(Member.is_active.is_(True))
    )
    query = build_member_search(query, filter_query.search)
    if filter_query.status is not None:
        query = query.filter(Member.membership_status == filter_query.status)

    query = query.order_by(Member.last_name.asc(), Member.first_name.asc())
    members, pagination = paginate(query, filter_query.page, filter_query.limit)

    # Per-page counts in two grouped queries
    ids = [m.id for m in members]
    donation_counts = dict(
        db.query(Donation.member_id, func.count(Donation.id))
        .filter(Donation.church_id == church_user.church_id, Donation.member_id.in_(ids))
        .group_by(Donation.member_id)
        .all()
    )
    attendance_counts = dict(
        db.query(Attendance.member_id, func.count(Attendance.id))
        .filter(
            Attendance.church_id == church_user.church_id,
            Attendance.member_id.in_(ids),
        )
        .group_by(Attendance.member_id)
        .all()
    )

    items = []
    for member in members:
        item = MemberSchema.model_validate(member).model_dump()
        item["family"] = member.family and FamilySchema.model_validate(member.family)
        item["donation_count"] = donation_counts.get(member.id, 0)
        item["attendance_count"] = attendance_counts.get(member.id, 0)
        items.append(item)

    return {"items": items, "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MemberSchema)
def create_member(
    data: MemberCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    church = db.query(Church).filter(Church.id == church_id).one()

    if count_members(db, church_id) >= church.max_members:
        raise HTTPException(
            status_code=403, detail="Member limit reached. Please upgrade your plan."
        )

    if data.email and _email_taken(db, church_id, data.email):
        raise HTTPException(
            status_code=400, detail="A member with this email already exists"
        )

    if data.family_id is not None:
        get_scoped_or_404(db, Family, church_id, data.family_id, "Family")

    member = Member(church_id=church_id, **data.model_dump())
    db.add(member)
    db.flush()

    log_activity(
        db, church_id, church_user.user_id, "MEMBER_CREATED", "Member", member.id,
        {"name": member.full_name},
    )
    db.commit()
    db.refresh(member)
    return member


@router.get("/{member_id}", response_model=MemberDetailResponse)
def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    member = get_scoped_or_404(db, Member, church_id, member_id, "Member")

    relatives = []
    if member.family_id is not None:
        relatives = (
            scoped_query(db, Member, church_id)
            .filter(Member.family_id == member.family_id, Member.id != member.id)
            .order_by(Member.first_name.asc())
            .all()
        )

    memberships = (
        db.query(GroupMember)
        .join(Group)
        .filter(Group.church_id == church_id, GroupMember.member_id == member.id)
        .order_by(Group.name.asc())
        .all()
    )

    donations = (
        scoped_query(db, Donation, church_id)
        .options(joinedload(Donation.fund))
        .filter(Donation.member_id == member.id)
        .order_by(Donation.donated_at.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    attendance = (
        scoped_query(db, Attendance, church_id)
        .options(joinedload(Attendance.event))
        .filter(Attendance.member_id == member.id)
        .order_by(Attendance.date.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    is_volunteer = db.query(
        scoped_query(db, Volunteer, church_id)
        .filter(Volunteer.member_id == member.id)
        .exists()
    ).scalar()

    detail = MemberSchema.model_validate(member).model_dump()
    detail.update(
        family=member.family and FamilySchema.model_validate(member.family),
        relatives=[FamilyRelative.model_validate(r) for r in relatives],
        groups=[
            {
                "group_id": gm.group.id,
                "name": gm.group.name,
                "category": gm.group.category,
                "role": gm.role.value,
            }
            for gm in memberships
        ],
        recent_donations=[
            {
                "id": d.id,
                "amount": float(d.amount),
                "fund_name": d.fund.name,
                "donated_at": d.donated_at,
            }
            for d in donations
        ],
        recent_attendance=[
            {
                "id": a.id,
                "date": a.date,
                "event_title": a.event.title if a.event else None,
            }
            for a in attendance
        ],
        is_volunteer=is_volunteer,
    )
    return detail


@router.patch("/{member_id}", response_model=MemberSchema)
def update_member(
    member_id: int,
    data: MemberUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    member = get_scoped_or_404(db, Member, church_id, member_id, "Member")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("email") and _email_taken(db, church_id, updates["email"], member.id):
        raise HTTPException(
            status_code=400, detail="A member with this email already exists"
        )
    if updates.get("family_id") is not None:
        get_scoped_or_404(db, Family, church_id, updates["family_id"], "Family")

    for field, value in updates.items():
        if value is None and field in ("first_name", "last_name", "is_active"):
            continue
        setattr(member, field, value)

    log_activity(
        db, church_id, church_user.user_id, "MEMBER_UPDATED", "Member", member.id,
        {"updated_fields": sorted(updates)},
    )
    db.commit()
    db.refresh(member)
    return member


@router.delete("/{member_id}", response_model=SuccessResponse)
def delete_member(
    member_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """
    Deletes a member together with their group memberships, attendance,
    check-ins and volunteer record.

    Donations and prayer requests are kept and unlinked so that giving
    history stays intact.
    """
    church_id = church_user.church_id
    member = get_scoped_or_404(db, Member, church_id, member_id, "Member")

    volunteer = (
        scoped_query(db, Volunteer, church_id)
        .filter(Volunteer.member_id == member.id)
        .first()
    )
    if volunteer:
        db.delete(volunteer)

    scoped_query(db, Donation, church_id).filter(
        Donation.member_id == member.id
    ).update({Donation.member_id: None}, synchronize_session=False)
    scoped_query(db, PrayerRequest, church_id).filter(
        PrayerRequest.member_id == member.id
    ).update({PrayerRequest.member_id: None}, synchronize_session=False)
    scoped_query(db, Group, church_id).filter(Group.leader_id == member.id).update(
        {Group.leader_id: None}, synchronize_session=False
    )

    name = member.full_name
    db.delete(member)
    log_activity(
        db, church_id, church_user.user_id, "MEMBER_DELETED", "Member", member_id,
        {"name": name},
    )
    db.commit()
    return {"success": True}
