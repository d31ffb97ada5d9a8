import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import Church, ChurchUser, CheckIn, Event, Group, VolunteerShift
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.events import (
    EventCreateRequest,
    EventListFilters,
    EventListItem,
    EventSchema,
    EventUpdateRequest,
    ICalFilters,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.codes import generate_code
from churchflow.utils.dates import utcnow
from churchflow.utils.ical import build_calendar
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def unique_check_in_code(db: Session) -> str:
    # Codes are unique across all churches so kiosks can look events up by code
    code = generate_code()
    while db.query(Event.id).filter(Event.check_in_code == code).first():
        code = generate_code()
    return code


# Public feed, declared before /{event_id}
@router.get("/ical")
def events_ical(
    filter_query: Annotated[ICalFilters, Query()],
    db: Session = Depends(get_db),
):
    if filter_query.church_id is None and not filter_query.slug:
        raise HTTPException(status_code=400, detail="Church ID or slug is required")

    query = db.query(Church)
    if filter_query.church_id is not None:
        query = query.filter(Church.id == filter_query.church_id)
    else:
        query = query.filter(Church.slug == filter_query.slug)
    church = query.first()
    if not church:
        raise HTTPException(status_code=404, detail="Church not found")

    events = (
        scoped_query(db, Event, church.id)
        .filter(Event.is_published.is_(True), Event.publish_to_website.is_(True))
        .order_by(Event.start_date.asc())
        .all()
    )

    return Response(
        content=build_calendar(church.name, church.timezone, events),
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{church.slug}-events.ics"'
        },
    )


@router.get("", response_model=list[EventListItem])
def list_events(
    filter_query: Annotated[EventListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    now = utcnow()
    query = scoped_query(db, Event, church_user.church_id)

    if filter_query.upcoming:
        query = query.filter(Event.start_date >= now)
    if filter_query.past:
        query = query.filter(Event.start_date < now)
    if filter_query.category is not None:
        query = query.filter(Event.category == filter_query.category)

    order = Event.start_date.asc() if filter_query.upcoming else Event.start_date.desc()
    events = query.order_by(order).all()

    check_in_counts = dict(
        db.query(CheckIn.event_id, func.count(CheckIn.id))
        .filter(
            CheckIn.church_id == church_user.church_id,
            CheckIn.event_id.in_([e.id for e in events]),
        )
        .group_by(CheckIn.event_id)
        .all()
    )

    items = []
    for event in events:
        item = EventSchema.model_validate(event).model_dump()
        item["check_in_count"] = check_in_counts.get(event.id, 0)
        items.append(item)
    return items


@router.post("", status_code=status.HTTP_201_CREATED, response_model=EventSchema)
def create_event(
    data: EventCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    if data.group_id is not None:
        get_scoped_or_404(db, Group, church_id, data.group_id, "Group")

    fields = data.model_dump()
    fields["end_date"] = data.end_date or data.start_date
    event = Event(church_id=church_id, **fields)
    if data.enable_check_in:
        event.check_in_code = unique_check_in_code(db)

    db.add(event)
    db.flush()
    log_activity(
        db, church_id, church_user.user_id, "EVENT_CREATED", "Event", event.id,
        {"title": event.title},
    )
    db.commit()
    db.refresh(event)
    return event


@router.get("/{event_id}", response_model=EventSchema)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return get_scoped_or_404(db, Event, church_user.church_id, event_id, "Event")


@router.patch("/{event_id}", response_model=EventSchema)
def update_event(
    event_id: int,
    data: EventUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    event = get_scoped_or_404(db, Event, church_id, event_id, "Event")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("group_id") is not None:
        get_scoped_or_404(db, Group, church_id, updates["group_id"], "Group")

    for field, value in updates.items():
        if value is None and field in ("title", "start_date", "category"):
            continue
        setattr(event, field, value)

    if event.enable_check_in and not event.check_in_code:
        event.check_in_code = unique_check_in_code(db)
    log_activity(
        db, church_id, church_user.user_id, "EVENT_UPDATED", "Event", event.id,
        {"updated_fields": sorted(updates)},
    )

    db.commit()
    db.refresh(event)
    return event


@router.delete("/{event_id}", response_model=SuccessResponse)
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    event = get_scoped_or_404(db, Event, church_id, event_id, "Event")

    # Shifts outlive the event; check-ins and attendance go with it
    scoped_query(db, VolunteerShift, church_id).filter(
        VolunteerShift.event_id == event.id
    ).update({VolunteerShift.event_id: None}, synchronize_session=False)

    db.delete(event)
    log_activity(
        db, church_id, church_user.user_id, "EVENT_DELETED", "Event", event_id,
        {"title": event.title},
    )
    db.commit()
    return {"success": True}
