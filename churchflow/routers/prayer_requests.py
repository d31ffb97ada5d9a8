import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import (
    ChurchRole,
    ChurchUser,
    Member,
    PrayerRequest,
    PrayerStatus,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.prayer_requests import (
    PrayerRequestCreateRequest,
    PrayerRequestListFilters,
    PrayerRequestListResponse,
    PrayerRequestSchema,
    PrayerRequestUpdateRequest,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.dates import utcnow
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()

# Pastors and above can read private requests
LEADER_ROLE = ChurchRole.pastor


def _own_member(db: Session, church_user: ChurchUser) -> Member | None:
    """The member record that shares the signed-in user's email, if any."""
    return (
        scoped_query(db, Member, church_user.church_id)
        .filter(Member.email == church_user.user.email)
        .first()
    )


def _serialize(prayer: PrayerRequest) -> dict:
    item = PrayerRequestSchema.model_validate(prayer).model_dump()
    if prayer.member and not prayer.is_anonymous:
        item["member_name"] = prayer.member.full_name
    if prayer.is_anonymous:
        item["member_id"] = None
    return item


def _get_visible(
    db: Session, church_user: ChurchUser, prayer_id: int
) -> PrayerRequest:
    prayer = get_scoped_or_404(
        db, PrayerRequest, church_user.church_id, prayer_id, "Prayer request"
    )
    if church_user.role < LEADER_ROLE and prayer.is_private:
        member = _own_member(db, church_user)
        if not member or prayer.member_id != member.id:
            # Hidden rather than forbidden
            raise HTTPException(status_code=404, detail="Prayer request not found")
    return prayer


@router.get("", response_model=PrayerRequestListResponse)
def list_prayer_requests(
    filter_query: Annotated[PrayerRequestListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    query = scoped_query(db, PrayerRequest, church_user.church_id).options(
        joinedload(PrayerRequest.member)
    )
    if filter_query.status is not None:
        query = query.filter(PrayerRequest.status == filter_query.status)

    if church_user.role < LEADER_ROLE:
        member = _own_member(db, church_user)
        visible = [PrayerRequest.is_private.is_(False)]
        if member:
            visible.append(PrayerRequest.member_id == member.id)
        query = query.filter(or_(*visible))

    query = query.order_by(PrayerRequest.created_at.desc(), PrayerRequest.id.desc())
    prayers, pagination = paginate(query, filter_query.page, filter_query.limit)
    return {"items": [_serialize(p) for p in prayers], "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PrayerRequestSchema)
def create_prayer_request(
    data: PrayerRequestCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    member = _own_member(db, church_user)

    prayer = PrayerRequest(
        church_id=church_id,
        member_id=member.id if member else None,
        status=PrayerStatus.pending,
        **data.model_dump(),
    )
    db.add(prayer)
    db.flush()
    log_activity(
        db, church_id, church_user.user_id, "PRAYER_REQUEST_CREATED", "PrayerRequest",
        prayer.id, {"title": prayer.title},
    )
    db.commit()
    db.refresh(prayer)
    return _serialize(prayer)


@router.get("/{prayer_id}", response_model=PrayerRequestSchema)
def get_prayer_request(
    prayer_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return _serialize(_get_visible(db, church_user, prayer_id))


@router.patch("/{prayer_id}", response_model=PrayerRequestSchema)
def update_prayer_request(
    prayer_id: int,
    data: PrayerRequestUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    prayer = _get_visible(db, church_user, prayer_id)

    updates = data.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is None and field != "category":
            continue
        setattr(prayer, field, value)

    if updates.get("status") == PrayerStatus.answered:
        prayer.answered_at = utcnow()
    elif "status" in updates and prayer.status != PrayerStatus.answered:
        prayer.answered_at = None
    log_activity(
        db, church_user.church_id, church_user.user_id, "PRAYER_REQUEST_UPDATED",
        "PrayerRequest", prayer.id, {"updated_fields": sorted(updates)},
    )

    db.commit()
    db.refresh(prayer)
    return _serialize(prayer)


@router.delete("/{prayer_id}", response_model=SuccessResponse)
def delete_prayer_request(
    prayer_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    prayer = _get_visible(db, church_user, prayer_id)
    db.delete(prayer)
    log_activity(
        db, church_user.church_id, church_user.user_id, "PRAYER_REQUEST_DELETED",
        "PrayerRequest", prayer_id,
    )
    db.commit()
    return {"success": True}


@router.post("/{prayer_id}/pray", response_model=PrayerRequestSchema)
def pray_for_request(
    prayer_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    prayer = _get_visible(db, church_user, prayer_id)
    prayer.prayer_count = PrayerRequest.prayer_count + 1
    db.commit()
    db.refresh(prayer)
    return _serialize(prayer)
