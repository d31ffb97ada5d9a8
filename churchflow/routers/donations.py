import logging
from decimal import Decimal
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import distinct, func, or_
from sqlalchemy.orm import Session, joinedload

from churchflow.database import get_db
from churchflow.dependencies import get_church_user
from churchflow.models import (
    ChurchUser,
    Donation,
    DonationFund,
    Member,
    PaymentStatus,
)
from churchflow.schemas.common import SuccessResponse
from churchflow.schemas.donations import (
    DonationCreateRequest,
    DonationListFilters,
    DonationListResponse,
    DonationSchema,
    DonationSummaryResponse,
    DonationUpdateRequest,
    FundCreateRequest,
    FundSchema,
)
from churchflow.utils.activity import log_activity
from churchflow.utils.dates import month_start, utcnow, year_start
from churchflow.utils.giving import (
    adjust_raised,
    completed_total,
    default_fund,
    refresh_giving_badge,
)
from churchflow.utils.pagination import paginate
from churchflow.utils.tenancy import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def _counts_toward_raised(donation: Donation) -> bool:
    return donation.payment_status == PaymentStatus.completed


# --- Funds ---
@router.get("/funds", response_model=list[FundSchema])
def list_funds(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    funds = (
        scoped_query(db, DonationFund, church_id)
        .order_by(DonationFund.is_default.desc(), DonationFund.name.asc())
        .all()
    )
    counts = dict(
        db.query(Donation.fund_id, func.count(Donation.id))
        .filter(Donation.church_id == church_id)
        .group_by(Donation.fund_id)
        .all()
    )

    items = []
    for fund in funds:
        item = FundSchema.model_validate(fund).model_dump()
        item["donation_count"] = counts.get(fund.id, 0)
        items.append(item)
    return items


@router.post("/funds", status_code=status.HTTP_201_CREATED, response_model=FundSchema)
def create_fund(
    data: FundCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    existing = (
        scoped_query(db, DonationFund, church_id)
        .filter(DonationFund.name == data.name)
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="A fund with this name already exists")

    if data.is_default:
        scoped_query(db, DonationFund, church_id).filter(
            DonationFund.is_default.is_(True)
        ).update({DonationFund.is_default: False}, synchronize_session=False)

    fund = DonationFund(
        church_id=church_id,
        name=data.name,
        description=data.description,
        goal=data.goal,
        is_default=data.is_default,
        is_active=True,
    )
    db.add(fund)
    db.flush()
    log_activity(
        db, church_id, church_user.user_id, "FUND_CREATED", "DonationFund", fund.id,
        {"name": fund.name},
    )
    db.commit()
    db.refresh(fund)
    return fund


# --- Summary ---
@router.get("/summary", response_model=DonationSummaryResponse)
def donation_summary(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """Giving totals for the dashboard. Only COMPLETED donations count."""
    church_id = church_user.church_id
    now = utcnow()
    this_month = month_start(now.year, now.month)
    last_month = month_start(now.year, now.month - 1)
    next_month = month_start(now.year, now.month + 1)
    ytd_start = year_start(now.year)

    completed_ytd = scoped_query(db, Donation, church_id).filter(
        Donation.payment_status == PaymentStatus.completed,
        Donation.donated_at >= ytd_start,
    )
    member_donors = (
        completed_ytd.filter(Donation.member_id.isnot(None))
        .with_entities(func.count(distinct(Donation.member_id)))
        .scalar()
    )
    guest_donors = (
        completed_ytd.filter(Donation.member_id.is_(None), Donation.donor_email.isnot(None))
        .with_entities(func.count(distinct(Donation.donor_email)))
        .scalar()
    )
    recurring_count = (
        scoped_query(db, Donation, church_id)
        .filter(
            Donation.payment_status == PaymentStatus.completed,
            Donation.is_recurring.is_(True),
            Donation.donated_at >= this_month,
            Donation.donated_at < next_month,
        )
        .count()
    )

    return {
        "this_month": completed_total(db, church_id, this_month, next_month),
        "last_month": completed_total(db, church_id, last_month, this_month),
        "year_to_date": completed_total(db, church_id, ytd_start),
        "donor_count": (member_donors or 0) + (guest_donors or 0),
        "recurring_count": recurring_count,
    }


# --- Donations ---
@router.get("", response_model=DonationListResponse)
def list_donations(
    filter_query: Annotated[DonationListFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    query = (
        scoped_query(db, Donation, church_user.church_id)
        .options(joinedload(Donation.member), joinedload(Donation.fund))
    )

    if filter_query.search:
        pattern = f"%{filter_query.search.strip()}%"
        query = query.outerjoin(Member, Donation.member_id == Member.id).filter(
            or_(
                Donation.donor_name.ilike(pattern),
                Donation.donor_email.ilike(pattern),
                Member.first_name.ilike(pattern),
                Member.last_name.ilike(pattern),
            )
        )
    if filter_query.fund_id is not None:
        query = query.filter(Donation.fund_id == filter_query.fund_id)
    if filter_query.payment_method is not None:
        query = query.filter(Donation.payment_method == filter_query.payment_method)
    if filter_query.start_date is not None:
        query = query.filter(Donation.donated_at >= filter_query.start_date)
    if filter_query.end_date is not None:
        query = query.filter(Donation.donated_at <= filter_query.end_date)

    query = query.order_by(Donation.donated_at.desc())
    items, pagination = paginate(query, filter_query.page, filter_query.limit)
    return {"items": items, "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DonationSchema)
def create_donation(
    data: DonationCreateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """
    Records a manual donation.

    Manual entries are COMPLETED straight away, so the fund's raised amount
    and the donor's giving badge are updated in the same transaction.
    """
    church_id = church_user.church_id

    if data.fund_id is not None:
        fund = get_scoped_or_404(db, DonationFund, church_id, data.fund_id, "Fund")
    else:
        fund = default_fund(db, church_id)

    member = None
    if data.member_id is not None:
        member = get_scoped_or_404(db, Member, church_id, data.member_id, "Member")

    notes = data.notes
    if data.check_number:
        notes = f"Check #{data.check_number}. {data.notes or ''}"

    donation = Donation(
        church_id=church_id,
        amount=Decimal(str(data.amount)),
        payment_method=data.payment_method,
        payment_status=PaymentStatus.completed,
        donor_name=None if data.is_anonymous else data.donor_name,
        donor_email=None if data.is_anonymous else data.donor_email,
        member_id=member.id if member else None,
        fund_id=fund.id,
        notes=notes,
        is_anonymous=data.is_anonymous,
        is_recurring=data.is_recurring,
        recurring_frequency=data.recurring_frequency if data.is_recurring else None,
        transaction_id=data.transaction_id,
        donated_at=data.donated_at or utcnow(),
    )
    db.add(donation)
    adjust_raised(fund, donation.amount)

    if member is not None:
        refresh_giving_badge(db, member)

    db.flush()
    donor = "Anonymous" if data.is_anonymous else (data.donor_name or "Guest")
    log_activity(
        db, church_id, church_user.user_id, "DONATION_CREATED", "Donation", donation.id,
        {"amount": data.amount, "donor": donor},
    )
    db.commit()
    db.refresh(donation)
    return donation


@router.get("/{donation_id}", response_model=DonationSchema)
def get_donation(
    donation_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    return get_scoped_or_404(
        db, Donation, church_user.church_id, donation_id, "Donation"
    )


@router.patch("/{donation_id}", response_model=DonationSchema)
def update_donation(
    donation_id: int,
    data: DonationUpdateRequest,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    donation = get_scoped_or_404(db, Donation, church_id, donation_id, "Donation")
    updates = data.model_dump(exclude_unset=True)

    old_fund = donation.fund
    old_member = donation.member
    if _counts_toward_raised(donation):
        adjust_raised(old_fund, -donation.amount)

    if updates.get("fund_id") is not None:
        get_scoped_or_404(db, DonationFund, church_id, updates["fund_id"], "Fund")
    if updates.get("member_id") is not None:
        get_scoped_or_404(db, Member, church_id, updates["member_id"], "Member")

    required = ("amount", "payment_method", "payment_status", "fund_id", "donated_at")
    for field, value in updates.items():
        if value is None and field in required:
            continue
        if field == "amount":
            value = Decimal(str(value))
        setattr(donation, field, value)

    db.flush()
    db.refresh(donation)
    if _counts_toward_raised(donation):
        adjust_raised(donation.fund, donation.amount)

    for member in {old_member, donation.member} - {None}:
        refresh_giving_badge(db, member)

    log_activity(
        db, church_id, church_user.user_id, "DONATION_UPDATED", "Donation", donation.id,
        {"updated_fields": sorted(updates)},
    )
    db.commit()
    db.refresh(donation)
    return donation


@router.delete("/{donation_id}", response_model=SuccessResponse)
def delete_donation(
    donation_id: int,
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    donation = get_scoped_or_404(db, Donation, church_id, donation_id, "Donation")

    if _counts_toward_raised(donation):
        adjust_raised(donation.fund, -donation.amount)

    member = donation.member
    details = {
        "amount": float(donation.amount),
        "member_name": member.full_name if member else "Anonymous",
    }
    db.delete(donation)
    if member is not None:
        refresh_giving_badge(db, member)

    log_activity(
        db, church_id, church_user.user_id, "DONATION_DELETED", "Donation", donation_id,
        details,
    )
    db.commit()
    return {"success": True}
