import logging
import re
from sqlalchemy.orm import Session
from churchflow.models import (
    Communication,
    CommunicationStatus,
    Group,
    GroupMember,
    Member,
    Volunteer,
    VolunteerStatus,
)
from churchflow.utils.dates import as_utc, utcnow
from churchflow.utils.tenancy import scoped_query

logger = logging.getLogger(__name__)

RECIPIENT_TYPES = ("all", "volunteers", "group")

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(content: str, values: dict) -> str:
    """
    Substitutes {{name}} placeholders.

    Placeholders without a value are left in the text as written.
    """
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key in values and values[key] is not None:
            return str(values[key])
        return match.group(0)

    return PLACEHOLDER_RE.sub(replace, content)


def extract_variables(*texts: str | None) -> list[str]:
    found = []
    for text in texts:
        for name in PLACEHOLDER_RE.findall(text or ""):
            if name not in found:
                found.append(name)
    return found


def count_recipients(
    db: Session, church_id: int, recipient_type: str, group_id: int | None
) -> int:
    if recipient_type == "all":
        return (
            scoped_query(db, Member, church_id)
            .filter(Member.is_active.is_(True))
            .count()
        )
    if recipient_type == "volunteers":
        return (
            scoped_query(db, Volunteer, church_id)
            .filter(Volunteer.status == VolunteerStatus.active)
            .count()
        )
    if recipient_type == "group" and group_id is not None:
        return (
            db.query(GroupMember)
            .join(Group)
            .filter(Group.church_id == church_id, GroupMember.group_id == group_id)
            .count()
        )
    return 0


def deliver(communication: Communication) -> None:
    # No provider integration: delivery marks the message as sent
    communication.status = CommunicationStatus.sent
    communication.sent_at = utcnow()
    logger.info(
        "Communication %s sent to %s recipients",
        communication.id,
        communication.recipient_count,
    )


def is_due(communication: Communication) -> bool:
    return (
        communication.status == CommunicationStatus.scheduled
        and communication.scheduled_for is not None
        and as_utc(communication.scheduled_for) <= utcnow()
    )


def dispatch_due(db: Session, church_id: int) -> int:
    """Sends every scheduled communication whose time has passed."""
    due = [
        c
        for c in scoped_query(db, Communication, church_id)
        .filter(Communication.status == CommunicationStatus.scheduled)
        .all()
        if is_due(c)
    ]
    for communication in due:
        deliver(communication)
    if due:
        db.commit()
    return len(due)
