from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from churchflow.database import get_db
from churchflow.dependencies import get_church_user, require_church_role
from churchflow.models import (
    ActivityLog,
    CheckIn,
    ChurchRole,
    ChurchUser,
    Donation,
    DonationFund,
    Event,
    Group,
    GroupMember,
    Member,
    PaymentStatus,
    ShiftStatus,
    Volunteer,
    VolunteerShift,
)
from churchflow.schemas.reports import (
    AttendanceReportFilters,
    AttendanceReportResponse,
    DashboardResponse,
    FinancialReportResponse,
    GroupsReportResponse,
    MembershipReportResponse,
    VolunteersReportResponse,
)
from churchflow.utils.dates import as_utc, day_bounds, utcnow
from churchflow.utils.giving import completed_total
from churchflow.utils.reports import (
    age_distribution,
    as_amount,
    count_check_ins,
    monthly_giving_trend,
    percent_change,
    period_bounds,
    weekly_check_in_trend,
)
from churchflow.utils.tenancy import scoped_query
from churchflow.utils.volunteers import shift_hours

router = APIRouter()

DASHBOARD_EVENT_LIMIT = 5
DASHBOARD_MEMBER_LIMIT = 5
DASHBOARD_ACTIVITY_LIMIT = 10
TOP_DONOR_LIMIT = 10
TOP_VOLUNTEER_LIMIT = 10
RECENT_EVENT_LIMIT = 10


def _count(db: Session, model, church_id: int) -> int:
    return scoped_query(db, model, church_id).count()


def _completed_donations(church_id: int, start, end=None):
    """Filters for COMPLETED donations with donated_at in [start, end)."""
    filters = [
        Donation.church_id == church_id,
        Donation.payment_status == PaymentStatus.completed,
        Donation.donated_at >= start,
    ]
    if end is not None:
        filters.append(Donation.donated_at < end)
    return filters


def _period_total(db: Session, church_id: int, start, end=None) -> dict:
    count = (
        db.query(func.count(Donation.id))
        .filter(*_completed_donations(church_id, start, end))
        .scalar()
    )
    return {
        "amount": as_amount(completed_total(db, church_id, start=start, end=end)),
        "count": count or 0,
    }


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    now = utcnow()
    bounds = period_bounds(now)

    this_month = completed_total(db, church_id, start=bounds["month"])
    last_month = completed_total(
        db, church_id, start=bounds["last_month"], end=bounds["month"]
    )
    upcoming = (
        scoped_query(db, Event, church_id)
        .filter(Event.start_date >= now)
        .order_by(Event.start_date.asc())
        .limit(DASHBOARD_EVENT_LIMIT)
        .all()
    )
    recent_members = (
        scoped_query(db, Member, church_id)
        .order_by(Member.created_at.desc(), Member.id.desc())
        .limit(DASHBOARD_MEMBER_LIMIT)
        .all()
    )
    recent_activity = (
        scoped_query(db, ActivityLog, church_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(DASHBOARD_ACTIVITY_LIMIT)
        .all()
    )
    new_members = (
        scoped_query(db, Member, church_id)
        .filter(Member.created_at >= bounds["month"])
        .count()
    )

    return {
        "total_members": _count(db, Member, church_id),
        "new_members_this_month": new_members,
        "total_events": _count(db, Event, church_id),
        "total_donations": _count(db, Donation, church_id),
        "total_volunteers": _count(db, Volunteer, church_id),
        "giving_this_month": as_amount(this_month),
        "giving_last_month": as_amount(last_month),
        "giving_change": percent_change(this_month, last_month),
        "upcoming_events": upcoming,
        "recent_members": recent_members,
        "recent_activity": recent_activity,
    }


@router.get("/financial", response_model=FinancialReportResponse)
def financial_report(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(require_church_role(ChurchRole.staff)),
):
    """
    Giving totals for the current month, last month and year to date.

    Only COMPLETED donations are counted. The breakdowns by fund, payment
    method and donor cover the year to date.
    """
    church_id = church_user.church_id
    now = utcnow()
    bounds = period_bounds(now)
    ytd_filters = _completed_donations(church_id, bounds["year"])

    this_month = _period_total(db, church_id, bounds["month"])
    last_month = _period_total(db, church_id, bounds["last_month"], bounds["month"])

    by_fund = (
        db.query(
            DonationFund.id,
            DonationFund.name,
            func.sum(Donation.amount),
            func.count(Donation.id),
        )
        .join(Donation.fund)
        .filter(*ytd_filters)
        .group_by(DonationFund.id, DonationFund.name)
        .order_by(func.sum(Donation.amount).desc())
        .all()
    )
    by_method = (
        db.query(
            Donation.payment_method,
            func.sum(Donation.amount),
            func.count(Donation.id),
        )
        .filter(*ytd_filters)
        .group_by(Donation.payment_method)
        .order_by(func.sum(Donation.amount).desc())
        .all()
    )
    top_donors = (
        db.query(
            Member.id,
            Member.first_name,
            Member.last_name,
            func.sum(Donation.amount).label("total"),
        )
        .join(Donation.member)
        .filter(*ytd_filters, Donation.is_anonymous.is_(False))
        .group_by(Member.id, Member.first_name, Member.last_name)
        .order_by(func.sum(Donation.amount).desc())
        .limit(TOP_DONOR_LIMIT)
        .all()
    )

    return {
        "this_month": this_month,
        "last_month": last_month,
        "year_to_date": _period_total(db, church_id, bounds["year"]),
        "monthly_change": percent_change(this_month["amount"], last_month["amount"]),
        "by_fund": [
            {
                "fund_id": fund_id,
                "fund_name": name,
                "amount": as_amount(total),
                "count": count,
            }
            for fund_id, name, total, count in by_fund
        ],
        "by_method": [
            {
                "payment_method": method.value,
                "amount": as_amount(total),
                "count": count,
            }
            for method, total, count in by_method
        ],
        "top_donors": [
            {
                "member_id": member_id,
                "name": f"{first} {last}",
                "amount": as_amount(total),
            }
            for member_id, first, last, total in top_donors
        ],
        "monthly_trend": monthly_giving_trend(db, church_id, now.year, now.month),
    }


@router.get("/attendance", response_model=AttendanceReportResponse)
def attendance_report(
    filter_query: Annotated[AttendanceReportFilters, Query()],
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """Check-in activity for a date range, year to date by default."""
    church_id = church_user.church_id
    now = utcnow()
    bounds = period_bounds(now)

    start_date = filter_query.start_date or bounds["year"].date()
    end_date = filter_query.end_date or now.date()
    if end_date < start_date:
        raise HTTPException(
            status_code=400, detail="End date must not be before start date"
        )
    start, _ = day_bounds(start_date)
    _, end = day_bounds(end_date)
    in_range = [
        CheckIn.church_id == church_id,
        CheckIn.check_in_time >= start,
        CheckIn.check_in_time < end,
    ]

    unique_attendees = (
        db.query(func.count(func.distinct(CheckIn.member_id)))
        .filter(*in_range)
        .scalar()
    )
    by_event_type = (
        db.query(Event.category, func.count(CheckIn.id))
        .join(CheckIn.event)
        .filter(*in_range)
        .group_by(Event.category)
        .order_by(func.count(CheckIn.id).desc())
        .all()
    )
    by_event = (
        db.query(Event.id, Event.title, Event.start_date, func.count(CheckIn.id))
        .join(CheckIn.event)
        .filter(*in_range)
        .group_by(Event.id, Event.title, Event.start_date)
        .order_by(Event.start_date.desc())
        .limit(RECENT_EVENT_LIMIT)
        .all()
    )

    this_month = count_check_ins(db, church_id, bounds["month"])
    last_month = count_check_ins(db, church_id, bounds["last_month"], bounds["month"])

    return {
        "start_date": start_date,
        "end_date": end_date,
        "total_check_ins": count_check_ins(db, church_id, start, end),
        "unique_attendees": unique_attendees or 0,
        "this_month": this_month,
        "last_month": last_month,
        "monthly_change": percent_change(this_month, last_month),
        "by_event_type": [
            {"category": category, "count": count} for category, count in by_event_type
        ],
        "by_event": [
            {
                "id": event_id,
                "title": title,
                "start_date": event_start,
                "check_in_count": count,
            }
            for event_id, title, event_start, count in by_event
        ],
        "weekly_trend": weekly_check_in_trend(db, church_id, now.date()),
    }


@router.get("/membership", response_model=MembershipReportResponse)
def membership_report(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    now = utcnow()
    bounds = period_bounds(now)
    members = scoped_query(db, Member, church_id)

    by_status = (
        db.query(Member.membership_status, func.count(Member.id))
        .filter(Member.church_id == church_id)
        .group_by(Member.membership_status)
        .all()
    )
    birth_dates = [
        born
        for (born,) in db.query(Member.date_of_birth).filter(
            Member.church_id == church_id, Member.date_of_birth.isnot(None)
        )
    ]
    total = members.count()
    last_year = members.filter(Member.created_at < bounds["year"]).count()

    return {
        "total_members": total,
        "by_status": {status.value: count for status, count in by_status},
        "new_this_year": members.filter(Member.created_at >= bounds["year"]).count(),
        "new_this_month": members.filter(Member.created_at >= bounds["month"]).count(),
        "members_last_year": last_year,
        "yearly_growth": percent_change(total, last_year),
        "age_groups": age_distribution(birth_dates, now.date()),
    }


@router.get("/groups", response_model=GroupsReportResponse)
def groups_report(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    church_id = church_user.church_id
    rows = (
        db.query(Group, func.count(GroupMember.id))
        .outerjoin(GroupMember, GroupMember.group_id == Group.id)
        .filter(Group.church_id == church_id)
        .group_by(Group.id)
        .order_by(func.count(GroupMember.id).desc(), Group.name.asc())
        .all()
    )

    by_category: dict[str, int] = {}
    for group, _ in rows:
        key = group.category.value
        by_category[key] = by_category.get(key, 0) + 1
    total_memberships = sum(count for _, count in rows)

    return {
        "total_groups": len(rows),
        "total_memberships": total_memberships,
        "average_size": round(total_memberships / len(rows), 1) if rows else 0.0,
        "by_category": by_category,
        "groups": [
            {
                "id": group.id,
                "name": group.name,
                "category": group.category.value,
                "member_count": count,
                "capacity": group.capacity,
            }
            for group, count in rows
        ],
    }


@router.get("/volunteers", response_model=VolunteersReportResponse)
def volunteers_report(
    db: Session = Depends(get_db),
    church_user: ChurchUser = Depends(get_church_user),
):
    """Volunteer counts and hours served, cancelled shifts excluded."""
    church_id = church_user.church_id
    bounds = period_bounds(utcnow())

    volunteers = scoped_query(db, Volunteer, church_id).all()
    shifts = scoped_query(db, VolunteerShift, church_id).all()

    by_status: dict[str, int] = {}
    for volunteer in volunteers:
        key = volunteer.status.value
        by_status[key] = by_status.get(key, 0) + 1

    roles: dict[int, dict] = {}
    hours_by_volunteer: dict[int, float] = {}
    active_this_month = set()
    for shift in shifts:
        hours = shift_hours(shift)
        entry = roles.setdefault(
            shift.role_id,
            {
                "role_id": shift.role_id,
                "role_name": shift.role.name,
                "volunteers": set(),
                "shifts": 0,
                "hours": 0.0,
            },
        )
        entry["volunteers"].add(shift.volunteer_id)
        entry["shifts"] += 1
        entry["hours"] += hours
        hours_by_volunteer[shift.volunteer_id] = (
            hours_by_volunteer.get(shift.volunteer_id, 0.0) + hours
        )
        starts = as_utc(shift.start_time)
        if (
            shift.status != ShiftStatus.cancelled
            and bounds["month"] <= starts < bounds["next_month"]
        ):
            active_this_month.add(shift.volunteer_id)

    hours_served = round(sum(hours_by_volunteer.values()), 1)
    names = {v.id: v.member.full_name for v in volunteers}
    top = sorted(hours_by_volunteer.items(), key=lambda item: item[1], reverse=True)

    return {
        "total_volunteers": len(volunteers),
        "by_status": by_status,
        "active_this_month": len(active_this_month),
        "hours_served": hours_served,
        "average_hours": (
            round(hours_served / len(volunteers), 1) if volunteers else 0.0
        ),
        "by_role": [
            {
                **entry,
                "volunteers": len(entry["volunteers"]),
                "hours": round(entry["hours"], 1),
            }
            for entry in sorted(roles.values(), key=lambda e: e["role_name"])
        ],
        "top_volunteers": [
            {
                "volunteer_id": volunteer_id,
                "name": names.get(volunteer_id, ""),
                "hours": round(hours, 1),
            }
            for volunteer_id, hours in top[:TOP_VOLUNTEER_LIMIT]
        ],
    }
