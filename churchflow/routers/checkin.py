import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import Attendance, CheckIn, ChurchUser, Event, Member
from churchflow.schemas.checkin import (
    CheckInCreateRequest,
    CheckInListFilters,
    CheckInListResponse,
    CheckInSchema,
    CheckInUpdateRequest,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.utils.activity import log_activity
from churchflow.utils.codes import SECURITY_CODE_LENGTH, generate_code
from churchflow.utils.dates import as_utc, day_bounds, utcnow
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=CheckInListResponse)
def list_check_ins(
    filter_query: Annotated[CheckInListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    query = scoped_query(db, CheckIn, church_user.church_id).options(
        joinedload(CheckIn.member), joinedload(CheckIn.event)
    )
    if filter_query.event_id is not None:
        query = query.filter(CheckIn.event_id == filter_query.event_id)
    if filter_query.date is not None:
        start, end = day_bounds(filter_query.date)
        query = query.filter(CheckIn.check_in_time >= start, CheckIn.check_in_time < end)
    if filter_query.is_child_check_in is not None:
        query = query.filter(CheckIn.is_child_check_in.is_(filter_query.is_child_check_in))

    query = query.order_by(CheckIn.check_in_time.desc(), CheckIn.id.desc())
    items, pagination = paginate(query, filter_query.page, filter_query.limit)
    return {"items": items, "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CheckInSchema)
def create_check_in(
    data: CheckInCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """
    Checks a member in and records their attendance.

    A member can be checked in to a given event once per day. Child
    check-ins receive a security code for pick-up.
    """
    church_id = church_user.church_id
    member = (
        scoped_query(db, Member, church_id).filter(Member.id == data.member_id).first()
    )
    if not member:
        raise HTTPException(status_code=404, detail="Member not found in this church")
    if data.event_id is not None:
        get_scoped_or_404(db, Event, church_id, data.event_id, "Event")

    check_in_time = as_utc(data.check_in_time) or utcnow()
    start, end = day_bounds(check_in_time.date())
    if data.event_id is not None:
        same_event = CheckIn.event_id == data.event_id
    else:
        same_event = CheckIn.event_id.is_(None)
    already = (
        scoped_query(db, CheckIn, church_id)
        .filter(
            CheckIn.member_id == member.id,
            same_event,
            CheckIn.check_in_time >= start,
            CheckIn.check_in_time < end,
        )
        .first()
    )
    if already:
        raise HTTPException(
            status_code=400, detail="Member is already checked in for this event today"
        )

    check_in = CheckIn(
        church_id=church_id,
        member_id=member.id,
        event_id=data.event_id,
        check_in_time=check_in_time,
        method=data.method,
        is_child_check_in=data.is_child_check_in,
        security_code=(
            generate_code(SECURITY_CODE_LENGTH) if data.is_child_check_in else None
        ),
        parent_name=data.parent_name if data.is_child_check_in else None,
        notes=data.notes,
    )
    db.add(check_in)
    db.add(
        Attendance(
            church_id=church_id,
            member_id=member.id,
            event_id=data.event_id,
            date=check_in_time.date(),
            check_in_time=check_in_time,
        )
    )
    db.flush()

    suffix = " (child)" if data.is_child_check_in else ""
    log_activity(
        db, church_id, church_user.user_id, "CHECK_IN_CREATED", "CheckIn", check_in.id,
        {"description": f"Checked in {member.full_name}{suffix}"},
    )
    db.commit()
    db.refresh(check_in)
    return check_in


@router.get("/{check_in_id}", response_model=CheckInSchema)
def get_check_in(
    check_in_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return get_scoped_or_404(db, CheckIn, church_user.church_id, check_in_id, "Check-in")


@router.patch("/{check_in_id}", response_model=CheckInSchema)
def update_check_in(
    check_in_id: int,
    data: CheckInUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    check_in = get_scoped_or_404(
        db, CheckIn, church_user.church_id, check_in_id, "Check-in"
    )
    updates = data.model_dump(exclude_unset=True)

    if updates.get("check_out_time") is not None:
        check_in.check_out_time = updates["check_out_time"]
        check_in.checked_out_by = church_user.user_id
    if "notes" in updates:
        check_in.notes = updates["notes"]

    checked_out = updates.get("check_out_time") is not None
    action = "CHECK_OUT" if checked_out else "CHECK_IN_UPDATED"
    log_activity(
        db, church_user.church_id, church_user.user_id, action, "CheckIn", check_in.id,
        {"member_name": check_in.member.full_name},
    )
    db.commit()
    db.refresh(check_in)
    return check_in


@router.delete("/{check_in_id}", response_model=SuccessResponse)
def delete_check_in(
    check_in_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    check_in = get_scoped_or_404(
        db, CheckIn, church_user.church_id, check_in_id, "Check-in"
    )
    log_activity(
        db, church_user.church_id, church_user.user_id, "CHECK_IN_DELETED", "CheckIn",
        check_in_id,
        {
            "member_name": check_in.member.full_name,
            "event_title": check_in.event.title if check_in.event else None,
        },
    )
    db.delete(check_in)
    db.commit()
    return {"success": True}
