import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import (
    ChurchUser,
    Event,
    Member,
    Volunteer,
    VolunteerRole,
    VolunteerShift,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.volunteers import (
    RoleCreateRequest,
    RoleSchema,
    ScheduleShiftSchema,
    ShiftCreateRequest,
    ShiftListFilters,
    ShiftSchema,
    VolunteerCreateRequest,
    VolunteerDetailResponse,
    VolunteerListFilters,
    VolunteerListResponse,
    VolunteerSchema,
    VolunteerUpdateRequest,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.dates import as_utc, utcnow
from churchflow.utils.members import build_member_search
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query
from churchflow.utils.volunteers import total_hours

logger = logging.getLogger(__name__)

router = APIRouter()

UPCOMING_SHIFTS = 3
DETAIL_SHIFTS = 20


# --- Roles ---
@router.get("/roles", response_model=list[RoleSchema])
def list_roles(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return (
        scoped_query(db, VolunteerRole, church_user.church_id)
        .order_by(VolunteerRole.name.asc())
        .all()
    )


@router.post("/roles", status_code=status.HTTP_201_CREATED, response_model=RoleSchema)
def create_role(
    data: RoleCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    existing = (
        scoped_query(db, VolunteerRole, church_id)
        .filter(func.lower(VolunteerRole.name) == data.name.lower())
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=400, detail="A role with this name already exists"
        )

    role = VolunteerRole(church_id=church_id, **data.model_dump())
    db.add(role)
    db.flush()
    log_activity(
        db, church_id, church_user.user_id, "VOLUNTEER_ROLE_CREATED", "VolunteerRole",
        role.id, {"name": role.name},
    )
    db.commit()
    db.refresh(role)
    return role


# --- Schedule ---
@router.get("/shifts", response_model=list[ScheduleShiftSchema])
def list_shifts(
    filter_query: Annotated[ShiftListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    query = (
        scoped_query(db, VolunteerShift, church_user.church_id)
        .options(
            joinedload(VolunteerShift.role),
            joinedload(VolunteerShift.volunteer).joinedload(Volunteer.member),
        )
    )
    if filter_query.start_date is not None:
        query = query.filter(VolunteerShift.start_time >= filter_query.start_date)
    if filter_query.end_date is not None:
        query = query.filter(VolunteerShift.start_time <= filter_query.end_date)
    if filter_query.role_id is not None:
        query = query.filter(VolunteerShift.role_id == filter_query.role_id)

    shifts = query.order_by(VolunteerShift.start_time.asc()).all()
    items = []
    for shift in shifts:
        item = ShiftSchema.model_validate(shift).model_dump()
        item["volunteer_name"] = shift.volunteer.member.full_name
        items.append(item)
    return items


# --- Volunteers ---
@router.get("", response_model=VolunteerListResponse)
def list_volunteers(
    filter_query: Annotated[VolunteerListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    query = (
        scoped_query(db, Volunteer, church_id)
        .join(Member, Volunteer.member_id == Member.id)
        .options(joinedload(Volunteer.member))
    )
    query = build_member_search(query, filter_query.search)
    if filter_query.status is not None:
        query = query.filter(Volunteer.status == filter_query.status)
    if filter_query.role_id is not None:
        has_role = (
            db.query(VolunteerShift.id)
            .filter(
                VolunteerShift.volunteer_id == Volunteer.id,
                VolunteerShift.role_id == filter_query.role_id,
            )
            .exists()
        )
        query = query.filter(has_role)

    query = query.order_by(Volunteer.created_at.desc(), Volunteer.id.desc())
    volunteers, pagination = paginate(query, filter_query.page, filter_query.limit)

    now = utcnow()
    items = []
    for volunteer in volunteers:
        upcoming = (
            scoped_query(db, VolunteerShift, church_id)
            .filter(
                VolunteerShift.volunteer_id == volunteer.id,
                VolunteerShift.start_time >= now,
            )
            .order_by(VolunteerShift.start_time.asc())
            .limit(UPCOMING_SHIFTS)
            .all()
        )
        item = VolunteerSchema.model_validate(volunteer).model_dump()
        item["upcoming_shifts"] = [ShiftSchema.model_validate(s) for s in upcoming]
        items.append(item)

    return {"items": items, "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=VolunteerSchema)
def create_volunteer(
    data: VolunteerCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    member = (
        scoped_query(db, Member, church_id).filter(Member.id == data.member_id).first()
    )
    if not member:
        raise HTTPException(status_code=404, detail="Member not found in this church")

    existing = (
        scoped_query(db, Volunteer, church_id)
        .filter(Volunteer.member_id == member.id)
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=400,
            detail="This member is already registered as a volunteer",
        )

    volunteer = Volunteer(church_id=church_id, **data.model_dump())
    db.add(volunteer)
    db.flush()
    log_activity(
        db, church_id, church_user.user_id, "VOLUNTEER_CREATED", "Volunteer",
        volunteer.id, {"member_name": member.full_name},
    )
    db.commit()
    db.refresh(volunteer)
    return volunteer


@router.get("/{volunteer_id}", response_model=VolunteerDetailResponse)
def get_volunteer(
    volunteer_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    volunteer = get_scoped_or_404(db, Volunteer, church_id, volunteer_id, "Volunteer")

    shifts = (
        scoped_query(db, VolunteerShift, church_id)
        .options(joinedload(VolunteerShift.role))
        .filter(VolunteerShift.volunteer_id == volunteer.id)
        .order_by(VolunteerShift.start_time.desc())
        .all()
    )

    detail = VolunteerSchema.model_validate(volunteer).model_dump()
    detail["shifts"] = [ShiftSchema.model_validate(s) for s in shifts[:DETAIL_SHIFTS]]
    detail["total_hours"] = total_hours(shifts)
    return detail


@router.patch("/{volunteer_id}", response_model=VolunteerSchema)
def update_volunteer(
    volunteer_id: int,
    data: VolunteerUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    volunteer = get_scoped_or_404(db, Volunteer, church_id, volunteer_id, "Volunteer")

    updates = data.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is None and field not in ("notes", "availability", "background_check_date"):
            continue
        setattr(volunteer, field, value)
    log_activity(
        db, church_id, church_user.user_id, "VOLUNTEER_UPDATED", "Volunteer",
        volunteer.id, {"updated_fields": sorted(updates)},
    )

    db.commit()
    db.refresh(volunteer)
    return volunteer


@router.delete("/{volunteer_id}", response_model=SuccessResponse)
def delete_volunteer(
    volunteer_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    volunteer = get_scoped_or_404(db, Volunteer, church_id, volunteer_id, "Volunteer")

    # Shifts are removed through the relationship cascade
    db.delete(volunteer)
    log_activity(
        db, church_id, church_user.user_id, "VOLUNTEER_DELETED", "Volunteer", volunteer_id
    )
    db.commit()
    return {"success": True}


@router.post(
    "/{volunteer_id}/shifts",
    status_code=status.HTTP_201_CREATED,
    response_model=ShiftSchema,
)
def create_shift(
    volunteer_id: int,
    data: ShiftCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    volunteer = get_scoped_or_404(db, Volunteer, church_id, volunteer_id, "Volunteer")
    get_scoped_or_404(db, VolunteerRole, church_id, data.role_id, "Role")
    if data.event_id is not None:
        get_scoped_or_404(db, Event, church_id, data.event_id, "Event")

    if as_utc(data.end_time) <= as_utc(data.start_time):
        raise HTTPException(status_code=400, detail="End time must be after start time")

    shift = VolunteerShift(
        church_id=church_id, volunteer_id=volunteer.id, **data.model_dump()
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return shift
