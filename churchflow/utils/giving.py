import logging
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from churchflow.models import Donation, DonationFund, Member, PaymentStatus
from churchflow.utils.churches import GENERAL_FUND_DESCRIPTION, GENERAL_FUND_NAME
from churchflow.utils.dates import utcnow
from churchflow.utils.tenancy import scoped_query

logger = logging.getLogger(__name__)

# Badges are computed against a fixed estimated household income
ESTIMATED_INCOME = Decimal("50000")

# (minimum share of income, badge), checked top down
GIVING_BADGES = [
    (Decimal("0.15"), "KINGDOM_BUILDER"),
    (Decimal("0.10"), "FAITHFUL_GIVER"),
    (Decimal("0.05"), "GENEROUS_HEART"),
]


def giving_badge(total: Decimal, income: Decimal = ESTIMATED_INCOME) -> str | None:
    if income <= 0 or total <= 0:
        return None
    share = Decimal(total) / income
    for threshold, badge in GIVING_BADGES:
        if share >= threshold:
            return badge
    return None


def completed_total(
    db: Session,
    church_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    **filters,
) -> Decimal:
    """
    Sum of COMPLETED donations with donated_at in [start, end).

    Extra keyword filters are matched as equality on Donation columns.
    """
    query = db.query(func.coalesce(func.sum(Donation.amount), 0)).filter(
        Donation.church_id == church_id,
        Donation.payment_status == PaymentStatus.completed,
    )
    if start is not None:
        query = query.filter(Donation.donated_at >= start)
    if end is not None:
        query = query.filter(Donation.donated_at < end)
    for column, value in filters.items():
        query = query.filter(getattr(Donation, column) == value)
    return Decimal(query.scalar() or 0)


def refresh_giving_badge(db: Session, member: Member) -> None:
    """Recomputes the badge from the member's last 12 months of giving."""
    db.flush()
    total = completed_total(
        db, member.church_id, start=utcnow() - timedelta(days=365), member_id=member.id
    )
    member.giving_badge = giving_badge(total)


def default_fund(db: Session, church_id: int) -> DonationFund:
    """Returns the church's default fund, creating a General Fund if needed."""
    fund = (
        scoped_query(db, DonationFund, church_id)
        .filter(DonationFund.is_default.is_(True))
        .first()
    )
    if fund:
        return fund

    # A non-default fund may already carry the name
    fund = (
        scoped_query(db, DonationFund, church_id)
        .filter(DonationFund.name == GENERAL_FUND_NAME)
        .first()
    )
    if fund:
        fund.is_default = True
        return fund

    fund = DonationFund(
        church_id=church_id,
        name=GENERAL_FUND_NAME,
        description=GENERAL_FUND_DESCRIPTION,
        is_default=True,
        is_active=True,
    )
    db.add(fund)
    db.flush()
    logger.info("Created default fund for church=%s", church_id)
    return fund


def adjust_raised(fund: DonationFund, delta: Decimal) -> None:
    fund.raised = Decimal(fund.raised or 0) + Decimal(delta)
