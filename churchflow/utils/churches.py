from datetime import timedelta
from sqlalchemy.orm import Session

from churchflow.models import (
    Church,
    ChurchUser,
    ChurchRole,
    DonationFund,
    SubscriptionStatus,
    SubscriptionTier,
    User,
)
from churchflow.settings import settings
from churchflow.utils.codes import generate_slug
from churchflow.utils.dates import utcnow
from churchflow.utils.onboarding import DEFAULT_MODULES

GENERAL_FUND_NAME = "General Fund"
GENERAL_FUND_DESCRIPTION = "General tithes and offerings"


def unique_church_slug(db: Session, name: str) -> str:
    """Returns slug, slug-1, slug-2, ... whichever is free first."""
    base = generate_slug(name)
    slug = base
    counter = 1
    while db.query(Church.id).filter(Church.slug == slug).first():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def create_church_for_owner(
    db: Session,
    owner: User,
    name: str,
    tier: SubscriptionTier,
    enabled_modules: list[str] | None = None,
    **fields,
) -> Church:
    """
    Creates a tenant on a trial subscription, links the user as OWNER and
    adds the default donation fund. Flushes but does not commit.
    """
    church = Church(
        name=name,
        slug=unique_church_slug(db, name),
        subscription_tier=tier,
        subscription_status=SubscriptionStatus.trial,
        trial_ends_at=utcnow() + timedelta(days=settings.TRIAL_DAYS),
        enabled_modules=list(enabled_modules or DEFAULT_MODULES),
        max_members=settings.DEFAULT_MAX_MEMBERS,
        max_storage=settings.DEFAULT_MAX_STORAGE,
        **fields,
    )
    db.add(church)
    db.flush()

    db.add(ChurchUser(user_id=owner.id, church_id=church.id, role=ChurchRole.owner))
    db.add(
        DonationFund(
            church_id=church.id,
            name=GENERAL_FUND_NAME,
            description=GENERAL_FUND_DESCRIPTION,
            is_default=True,
        )
    )
    db.flush()
    return church
