import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import (
    ChurchUser,
    Communication,
    CommunicationStatus,
    Group,
    MessageTemplate,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.communications import (
    CommunicationCreateRequest,
    CommunicationListFilters,
    CommunicationListResponse,
    CommunicationSchema,
    CommunicationSummaryResponse,
    CommunicationUpdateRequest,
    TemplateCreateRequest,
    TemplateSchema,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.messaging import (
    count_recipients,
    deliver,
    dispatch_due,
    extract_variables,
    is_due,
)
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def _send_if_ready(communication: Communication) -> None:
    if communication.status == CommunicationStatus.sending or is_due(communication):
        deliver(communication)


def _check_schedule(status_value, scheduled_for) -> None:
    if status_value == CommunicationStatus.scheduled and scheduled_for is None:
        raise HTTPException(
            status_code=400, detail="Scheduled communications need a scheduled time"
        )


# --- Templates ---
@router.get("/templates", response_model=list[TemplateSchema])
def list_templates(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return (
        scoped_query(db, MessageTemplate, church_user.church_id)
        .order_by(MessageTemplate.name.asc())
        .all()
    )


@router.post("/templates", status_code=status.HTTP_201_CREATED, response_model=TemplateSchema)
def create_template(
    data: TemplateCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    existing = (
        scoped_query(db, MessageTemplate, church_id)
        .filter(func.lower(MessageTemplate.name) == data.name.lower())
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=400, detail="A template with this name already exists"
        )

    template = MessageTemplate(
        church_id=church_id,
        variables=extract_variables(data.subject, data.content),
        **data.model_dump(),
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


# --- Summary ---
@router.get("/summary", response_model=CommunicationSummaryResponse)
def communication_summary(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    dispatch_due(db, church_id)

    counts = dict(
        scoped_query(db, Communication, church_id)
        .with_entities(Communication.status, func.count(Communication.id))
        .group_by(Communication.status)
        .all()
    )
    reached = (
        scoped_query(db, Communication, church_id)
        .filter(Communication.status == CommunicationStatus.sent)
        .with_entities(func.coalesce(func.sum(Communication.recipient_count), 0))
        .scalar()
    )
    return {
        "sent_count": counts.get(CommunicationStatus.sent, 0),
        "draft_count": counts.get(CommunicationStatus.draft, 0),
        "scheduled_count": counts.get(CommunicationStatus.scheduled, 0),
        "recipients_reached": reached or 0,
    }


# --- Communications ---
@router.get("", response_model=CommunicationListResponse)
def list_communications(
    filter_query: Annotated[CommunicationListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    dispatch_due(db, church_id)

    query = scoped_query(db, Communication, church_id)
    if filter_query.status is not None:
        query = query.filter(Communication.status == filter_query.status)
    if filter_query.channel is not None:
        query = query.filter(Communication.channel == filter_query.channel)

    query = query.order_by(Communication.created_at.desc(), Communication.id.desc())
    items, pagination = paginate(query, filter_query.page, filter_query.limit)
    return {"items": items, "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CommunicationSchema)
def create_communication(
    data: CommunicationCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    if data.group_id is not None:
        get_scoped_or_404(db, Group, church_id, data.group_id, "Group")
    _check_schedule(data.status, data.scheduled_for)

    communication = Communication(
        church_id=church_id,
        created_by=church_user.user_id,
        recipient_count=count_recipients(
            db, church_id, data.recipient_type, data.group_id
        ),
        **data.model_dump(),
    )
    db.add(communication)
    db.flush()
    _send_if_ready(communication)

    log_activity(
        db, church_id, church_user.user_id, "COMMUNICATION_CREATED", "Communication",
        communication.id,
        {"channel": communication.channel.value, "subject": communication.subject},
    )
    db.commit()
    db.refresh(communication)
    return communication


@router.get("/{communication_id}", response_model=CommunicationSchema)
def get_communication(
    communication_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    dispatch_due(db, church_id)
    return get_scoped_or_404(
        db, Communication, church_id, communication_id, "Communication"
    )


@router.patch("/{communication_id}", response_model=CommunicationSchema)
def update_communication(
    communication_id: int,
    data: CommunicationUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    communication = get_scoped_or_404(
        db, Communication, church_id, communication_id, "Communication"
    )
    if communication.status == CommunicationStatus.sent:
        raise HTTPException(status_code=400, detail="Cannot edit a sent communication")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("group_id") is not None:
        get_scoped_or_404(db, Group, church_id, updates["group_id"], "Group")

    required = ("channel", "subject", "content", "recipient_type", "status")
    for field, value in updates.items():
        if value is None and field in required:
            continue
        setattr(communication, field, value)

    _check_schedule(communication.status, communication.scheduled_for)
    if "recipient_type" in updates or "group_id" in updates:
        communication.recipient_count = count_recipients(
            db, church_id, communication.recipient_type, communication.group_id
        )
    _send_if_ready(communication)
    log_activity(
        db, church_id, church_user.user_id, "COMMUNICATION_UPDATED", "Communication",
        communication.id, {"updated_fields": sorted(updates)},
    )

    db.commit()
    db.refresh(communication)
    return communication


@router.delete("/{communication_id}", response_model=SuccessResponse)
def delete_communication(
    communication_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    communication = get_scoped_or_404(
        db, Communication, church_id, communication_id, "Communication"
    )
    if communication.status == CommunicationStatus.sent:
        raise HTTPException(
            status_code=400, detail="Cannot delete a sent communication"
        )

    db.delete(communication)
    log_activity(
        db, church_id, church_user.user_id, "COMMUNICATION_DELETED", "Communication",
        communication_id, {"subject": communication.subject},
    )
    db.commit()
    return {"success": True}
