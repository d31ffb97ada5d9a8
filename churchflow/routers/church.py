import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.dependencies import get_current_user, get_church_user, require_church_role
from churchflow.models import Church, ChurchRole, ChurchUser, User
from churchflow.schemas.church import ChurchSchema, ChurchUpdateRequest, OnboardingRequest
from churchflow.utils.activity import log_activity
from churchflow.utils.churches import create_church_for_owner
from churchflow.utils.onboarding import tier_for_attendance

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ChurchSchema)
def get_church(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return db.query(Church).filter(Church.id == church_user.church_id).one()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ChurchSchema)
def onboard_church(
    data: OnboardingRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Creates the church for a signed-in user who has none yet (onboarding).

    The subscription tier is suggested from the attendance bracket and the
    church starts on a trial.
    """
    existing = db.query(ChurchUser).filter(ChurchUser.user_id == user.id).first()
    if existing:
        raise HTTPException(status_code=400, detail="You already belong to a church")

    church = create_church_for_owner(
        db,
        user,
        data.church_name,
        tier=tier_for_attendance(data.average_attendance),
        description=data.denomination,
        website=data.website,
        phone=data.phone,
        email=data.email,
        address=data.address,
        city=data.city,
        state=data.state,
        postal_code=data.zip_code,
        country=data.country or "United States",
        timezone=data.timezone or "America/New_York",
    )
    log_activity(
        db, church.id, user.id, "CHURCH_CREATED", "Church", church.id,
        {"church_name": church.name},
    )
    db.commit()
    db.refresh(church)
    return church


@router.patch("", response_model=ChurchSchema)
def update_church(
    data: ChurchUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(require_church_role(ChurchRole.admin)),
):
    church = db.query(Church).filter(Church.id == church_user.church_id).one()

    updates = data.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is None and field in ("name", "timezone", "enabled_modules"):
            continue  # required columns
        setattr(church, field, value)

    log_activity(
        db, church.id, church_user.user_id, "CHURCH_UPDATED", "Church", church.id,
        {"updated_fields": sorted(updates)},
    )
    db.commit()
    db.refresh(church)
    return church
