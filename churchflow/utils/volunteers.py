from churchflow.models import ShiftStatus, VolunteerShift
from churchflow.utils.dates import as_utc


def shift_hours(shift: VolunteerShift) -> float:
    if shift.status == ShiftStatus.cancelled:
        return 0.0
    delta = as_utc(shift.end_time) - as_utc(shift.start_time)
    return max(delta.total_seconds(), 0) / 3600


def total_hours(shifts: list[VolunteerShift]) -> float:
    """Hours served across shifts, cancelled shifts excluded."""
    return round(sum(shift_hours(s) for s in shifts), 1)
