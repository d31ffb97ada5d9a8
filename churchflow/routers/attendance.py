import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import Attendance, ChurchUser, Event, Member
from churchflow.schemas.checkin import (
    AttendanceCreateRequest,
    AttendanceListFilters,
    AttendanceSchema,
)
from churchflow.utils.dates import as_utc, utcnow
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[AttendanceSchema])
def list_attendance(
    filter_query: Annotated[AttendanceListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    query = scoped_query(db, Attendance, church_user.church_id).options(
        joinedload(Attendance.member)
    )
    if filter_query.event_id is not None:
        query = query.filter(Attendance.event_id == filter_query.event_id)
    if filter_query.start_date is not None:
        query = query.filter(Attendance.date >= filter_query.start_date)
    if filter_query.end_date is not None:
        query = query.filter(Attendance.date <= filter_query.end_date)

    return query.order_by(Attendance.date.desc(), Attendance.id.desc()).all()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AttendanceSchema)
def record_attendance(
    data: AttendanceCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """Records attendance without a check-in. Offline attendance replays here."""
    church_id = church_user.church_id
    member = (
        scoped_query(db, Member, church_id).filter(Member.id == data.member_id).first()
    )
    if not member:
        raise HTTPException(status_code=404, detail="Member not found in this church")
    if data.event_id is not None:
        get_scoped_or_404(db, Event, church_id, data.event_id, "Event")

    check_in_time = as_utc(data.check_in_time) or utcnow()
    attendance = Attendance(
        church_id=church_id,
        member_id=member.id,
        event_id=data.event_id,
        date=data.date or check_in_time.date(),
        check_in_time=check_in_time,
    )
    db.add(attendance)
    db.commit()
    db.refresh(attendance)
    logger.info("Attendance recorded church=%s member=%s", church_id, member.id)
    return attendance
