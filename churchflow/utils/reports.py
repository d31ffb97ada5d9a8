from datetime import date, datetime, timedelta
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from churchflow.models import CheckIn
from churchflow.utils.dates import day_bounds, month_start, year_start
from churchflow.utils.giving import completed_total

MIN_REPORT_DATE = date(1900, 1, 1)
MAX_REPORT_DATE = date(2100, 1, 1)

TREND_WEEKS = 12

# (label, maximum age inclusive); the last bucket is open ended
AGE_GROUPS = [
    ("0-12", 12),
    ("13-17", 17),
    ("18-25", 25),
    ("26-35", 35),
    ("36-50", 50),
    ("51-65", 65),
    ("65+", None),
]


def period_bounds(now: datetime) -> dict[str, datetime]:
    """Start of this month, last month, next month and this year, in UTC."""
    return {
        "month": month_start(now.year, now.month),
        "last_month": month_start(now.year, now.month - 1),
        "next_month": month_start(now.year, now.month + 1),
        "year": year_start(now.year),
    }


def percent_change(current, previous) -> float:
    if not previous:
        return 0.0
    return round((float(current) - float(previous)) / float(previous) * 100, 1)


def age_on(born: date, today: date) -> int:
    before_birthday = (today.month, today.day) < (born.month, born.day)
    return today.year - born.year - before_birthday


def age_distribution(birth_dates: list[date], today: date) -> dict[str, int]:
    counts = {label: 0 for label, _ in AGE_GROUPS}
    for born in birth_dates:
        age = age_on(born, today)
        for label, upper in AGE_GROUPS:
            if upper is None or age <= upper:
                counts[label] += 1
                break
    return counts


def monthly_giving_trend(
    db: Session, church_id: int, year: int, through_month: int
) -> list[dict]:
    """COMPLETED giving per calendar month from January to through_month."""
    trend = []
    for month in range(1, through_month + 1):
        total = completed_total(
            db,
            church_id,
            start=month_start(year, month),
            end=month_start(year, month + 1),
        )
        label = month_start(year, month).strftime("%b")
        trend.append({"month": label, "amount": float(total)})
    return trend


def count_check_ins(
    db: Session,
    church_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> int:
    """Check-ins with check_in_time in [start, end)."""
    query = db.query(func.count(CheckIn.id)).filter(CheckIn.church_id == church_id)
    if start is not None:
        query = query.filter(CheckIn.check_in_time >= start)
    if end is not None:
        query = query.filter(CheckIn.check_in_time < end)
    return query.scalar() or 0


def weekly_check_in_trend(
    db: Session, church_id: int, today: date, weeks: int = TREND_WEEKS
) -> list[dict]:
    """Check-in counts for the last `weeks` Sunday-started weeks, oldest first."""
    # date.weekday() is Monday=0; weeks here start on Sunday
    this_sunday = today - timedelta(days=(today.weekday() + 1) % 7)
    trend = []
    for offset in range(weeks - 1, -1, -1):
        week_start = this_sunday - timedelta(weeks=offset)
        start, _ = day_bounds(week_start)
        count = count_check_ins(db, church_id, start, start + timedelta(days=7))
        trend.append({"week": f"{week_start.month}/{week_start.day}", "count": count})
    return trend


def as_amount(value) -> float:
    return float(Decimal(value or 0))
