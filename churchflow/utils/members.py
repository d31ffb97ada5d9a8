from sqlalchemy import or_
from sqlalchemy.orm import Query, Session
from churchflow.models import Member, MembershipStatus
from churchflow.utils.tenancy import scoped_query


def build_member_search(query: Query, search: str | None) -> Query:
    """Case-insensitive match on first name, last name or email."""
    if not search:
        return query
    pattern = f"%{search.strip()}%"
    return query.filter(
        or_(
            Member.first_name.ilike(pattern),
            Member.last_name.ilike(pattern),
            Member.email.ilike(pattern),
        )
    )


def count_members(db: Session, church_id: int) -> int:
    return scoped_query(db, Member, church_id).count()


def upsert_member(db: Session, church_id: int, data: dict) -> tuple[Member, bool]:
    """
    Creates the member unless one with the same (church_id, email) exists.

    Existing members are returned untouched so re-running the seed never
    overwrites edits. Returns (member, created).
    """
    email = data.get("email")
    if email:
        existing = (
            scoped_query(db, Member, church_id).filter(Member.email == email).first()
        )
        if existing:
            return existing, False

    fields = dict(data)
    fields.setdefault("membership_status", MembershipStatus.visitor)
    member = Member(church_id=church_id, **fields)
    db.add(member)
    db.flush()
    return member, True
