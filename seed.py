"""
Loads demo data: an admin login, Grace Community Church and a little of
everything it needs to look lived in. Safe to run more than once.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from churchflow.database import SessionLocal
from churchflow.logging_config import configure_logging
from churchflow.models import (
    Church,
    ChurchRole,
    ChurchUser,
    DonationFund,
    Event,
    EventCategory,
    Gender,
    Group,
    GroupCategory,
    MembershipStatus,
    MessageChannel,
    MessageTemplate,
    SubscriptionStatus,
    SubscriptionTier,
    User,
    VolunteerRole,
)
from churchflow.routers.events import unique_check_in_code
from churchflow.utils.auth import hash_password
from churchflow.utils.churches import GENERAL_FUND_DESCRIPTION, GENERAL_FUND_NAME
from churchflow.utils.dates import utcnow
from churchflow.utils.members import upsert_member
from churchflow.utils.messaging import extract_variables

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "password123"
CHURCH_SLUG = "grace-community-church"
DEMO_MODULES = [
    "members",
    "events",
    "communications",
    "donations",
    "volunteers",
    "website",
    "checkin",
    "groups",
]

FUNDS = [
    {
        "name": GENERAL_FUND_NAME,
        "description": GENERAL_FUND_DESCRIPTION,
        "is_default": True,
    },
    {
        "name": "Missions Fund",
        "description": "Support for global and local missions",
        "goal": Decimal("50000"),
    },
    {
        "name": "Building Fund",
        "description": "Building maintenance and improvements",
        "goal": Decimal("100000"),
    },
]

MEMBERS = [
    {
        "first_name": "John",
        "last_name": "Smith",
        "email": "john.smith@example.com",
        "phone": "(555) 234-5678",
        "membership_status": MembershipStatus.member,
        "membership_date": date(2020, 3, 15),
        "gender": Gender.male,
    },
    {
        "first_name": "Sarah",
        "last_name": "Johnson",
        "email": "sarah.j@example.com",
        "phone": "(555) 345-6789",
        "membership_status": MembershipStatus.member,
        "membership_date": date(2019, 6, 20),
        "gender": Gender.female,
    },
    {
        "first_name": "Michael",
        "last_name": "Williams",
        "email": "m.williams@example.com",
        "phone": "(555) 456-7890",
        "membership_status": MembershipStatus.regular_attender,
        "gender": Gender.male,
    },
    {
        "first_name": "Emily",
        "last_name": "Brown",
        "email": "emily.b@example.com",
        "phone": "(555) 567-8901",
        "membership_status": MembershipStatus.visitor,
        "gender": Gender.female,
    },
    {
        "first_name": "David",
        "last_name": "Davis",
        "email": "david.d@example.com",
        "phone": "(555) 678-9012",
        "membership_status": MembershipStatus.member,
        "membership_date": date(2021, 1, 10),
        "gender": Gender.male,
    },
]

GROUPS = [
    {
        "name": "Young Adults",
        "category": GroupCategory.small_group,
        "description": "A community for those in their 20s and 30s",
        "meeting_day": "Tuesday",
        "meeting_time": "7:00 PM",
        "location": "Fellowship Hall",
    },
    {
        "name": "Worship Team",
        "category": GroupCategory.ministry_team,
        "description": "Musicians and vocalists leading worship",
        "meeting_day": "Saturday",
        "meeting_time": "4:00 PM",
        "location": "Sanctuary",
    },
    {
        "name": "Children's Ministry",
        "category": GroupCategory.children,
        "description": "Teaching and caring for children ages 0-12",
        "meeting_day": "Sunday",
        "meeting_time": "9:00 AM",
        "location": "Kids Wing",
    },
    {
        "name": "Men's Bible Study",
        "category": GroupCategory.men,
        "description": "Weekly Bible study for men",
        "meeting_day": "Thursday",
        "meeting_time": "6:30 AM",
        "location": "Conference Room",
    },
    {
        "name": "Women's Fellowship",
        "category": GroupCategory.women,
        "description": "Community and study for women",
        "meeting_day": "Wednesday",
        "meeting_time": "10:00 AM",
        "location": "Fellowship Hall",
    },
]

VOLUNTEER_ROLES = [
    ("Greeter", "Hospitality", "Welcome visitors and members", False),
    ("Usher", "Hospitality", "Help seat guests and collect offering", False),
    ("Worship Leader", "Worship", "Lead musical worship", True),
    ("Sound Tech", "Tech", "Operate sound equipment", False),
    ("Kids Teacher", "Children", "Teach children's classes", True),
    ("Nursery Worker", "Children", "Care for infants and toddlers", True),
    ("Parking Team", "Hospitality", "Direct parking and assist guests", False),
]

TEMPLATES = [
    {
        "name": "Welcome Email",
        "category": "Onboarding",
        "channel": MessageChannel.email,
        "subject": "Welcome to {{churchName}}!",
        "content": (
            "Dear {{firstName}},\n\n"
            "We're so glad you visited {{churchName}}! "
            "We hope you felt welcomed and blessed.\n\n"
            "We'd love to help you get connected. Please don't hesitate to "
            "reach out if you have any questions.\n\n"
            "Blessings,\nThe {{churchName}} Team"
        ),
    },
    {
        "name": "Event Reminder",
        "category": "Events",
        "channel": MessageChannel.email,
        "subject": "Reminder: {{eventName}} is coming up!",
        "content": (
            "Hi {{firstName}},\n\n"
            "Just a friendly reminder that {{eventName}} is happening on "
            "{{eventDate}} at {{eventTime}}.\n\n"
            "Location: {{eventLocation}}\n\n"
            "We can't wait to see you there!\n\nBlessings,\n{{churchName}}"
        ),
    },
    {
        "name": "Birthday Greeting",
        "category": "Engagement",
        "channel": MessageChannel.email,
        "subject": "Happy Birthday, {{firstName}}!",
        "content": (
            "Dear {{firstName}},\n\n"
            "Happy Birthday! We hope your special day is filled with joy, "
            "love, and blessings.\n\n"
            "With love,\nYour {{churchName}} Family"
        ),
    },
    {
        "name": "Volunteer Reminder",
        "category": "Volunteers",
        "channel": MessageChannel.sms,
        "subject": None,
        "content": (
            "Hi {{firstName}}! Reminder: You're scheduled to serve as {{role}} "
            "on {{date}} at {{time}}. Reply CONFIRM to confirm or HELP if you "
            "need to find a sub. Thanks!"
        ),
    },
]


def _next_weekday(today: date, weekday: int, skip_today: bool = False) -> date:
    # weekday follows date.weekday(): Monday=0 ... Sunday=6
    days_ahead = (weekday - today.weekday()) % 7
    if skip_today and days_ahead == 0:
        days_ahead = 7
    return today + timedelta(days=days_ahead)


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def seed_admin(db: Session) -> User:
    user = db.query(User).filter(User.email == ADMIN_EMAIL).first()
    if user:
        return user
    user = User(
        email=ADMIN_EMAIL,
        name="Admin User",
        hashed_password=hash_password(ADMIN_PASSWORD),
    )
    db.add(user)
    db.flush()
    logger.info("Created user %s", user.email)
    return user


def seed_church(db: Session, owner: User) -> Church:
    church = db.query(Church).filter(Church.slug == CHURCH_SLUG).first()
    if not church:
        church = Church(
            name="Grace Community Church",
            slug=CHURCH_SLUG,
            email=ADMIN_EMAIL,
            phone="(555) 123-4567",
            address="123 Faith Street",
            city="Springfield",
            state="IL",
            country="USA",
            postal_code="62701",
            description="A welcoming community of faith",
            subscription_status=SubscriptionStatus.trial,
            subscription_tier=SubscriptionTier.premium,
            trial_ends_at=utcnow() + timedelta(days=30),
            enabled_modules=DEMO_MODULES,
            max_members=1000,
            max_storage=50,
        )
        db.add(church)
        db.flush()
        logger.info("Created church %s", church.name)

    link = (
        db.query(ChurchUser)
        .filter(ChurchUser.user_id == owner.id, ChurchUser.church_id == church.id)
        .first()
    )
    if not link:
        db.add(ChurchUser(user_id=owner.id, church_id=church.id, role=ChurchRole.owner))
        db.flush()
    return church


def create_fund(db: Session, church: Church, **fields) -> DonationFund | None:
    """Creates a fund, returning None if the church already has one by that name."""
    try:
        with db.begin_nested():
            fund = DonationFund(church_id=church.id, **fields)
            db.add(fund)
    except IntegrityError:
        logger.warning(
            "Fund %r already exists for %s, skipping", fields["name"], church.slug
        )
        return None
    return fund


def seed_members(db: Session, church: Church) -> int:
    created = 0
    for data in MEMBERS:
        _, was_created = upsert_member(db, church.id, data)
        created += was_created
    return created


def seed_groups(db: Session, church: Church) -> None:
    existing = {
        name for (name,) in db.query(Group.name).filter(Group.church_id == church.id)
    }
    for data in GROUPS:
        if data["name"] not in existing:
            db.add(Group(church_id=church.id, **data))


def seed_events(db: Session, church: Church) -> None:
    existing = {
        title for (title,) in db.query(Event.title).filter(Event.church_id == church.id)
    }
    today = utcnow().date()
    sunday = _next_weekday(today, 6, skip_today=True)
    wednesday = _next_weekday(today, 2)
    friday = _next_weekday(today, 4)
    outreach = (today.replace(day=1) + timedelta(days=32)).replace(day=15)

    events = [
        {
            "title": "Sunday Worship Service",
            "category": EventCategory.service,
            "start_date": _at(sunday, 10),
            "end_date": _at(sunday, 12),
            "location": "Main Sanctuary",
            "is_recurring": True,
            "recurrence_rule": "RRULE:FREQ=WEEKLY;BYDAY=SU",
            "enable_check_in": True,
            "is_published": True,
            "publish_to_website": True,
        },
        {
            "title": "Wednesday Night Prayer",
            "category": EventCategory.prayer,
            "start_date": _at(wednesday, 19),
            "end_date": _at(wednesday, 20, 30),
            "location": "Prayer Room",
            "is_recurring": True,
            "is_published": True,
        },
        {
            "title": "Youth Group",
            "category": EventCategory.youth,
            "start_date": _at(friday, 18, 30),
            "end_date": _at(friday, 21),
            "location": "Youth Center",
            "is_recurring": True,
            "is_published": True,
            "publish_to_website": True,
        },
        {
            "title": "Community Outreach",
            "category": EventCategory.outreach,
            "start_date": _at(outreach, 9),
            "end_date": _at(outreach, 14),
            "description": (
                "Serving our local community through food distribution "
                "and home repairs"
            ),
            "location": "Various Locations",
            "requires_registration": True,
            "max_attendees": 50,
            "is_published": True,
            "publish_to_website": True,
        },
    ]
    for data in events:
        if data["title"] in existing:
            continue
        event = Event(church_id=church.id, **data)
        if event.enable_check_in:
            event.check_in_code = unique_check_in_code(db)
        db.add(event)
        db.flush()


def seed_volunteer_roles(db: Session, church: Church) -> None:
    existing = {
        name
        for (name,) in db.query(VolunteerRole.name).filter(
            VolunteerRole.church_id == church.id
        )
    }
    for name, ministry, description, background_check in VOLUNTEER_ROLES:
        if name in existing:
            continue
        db.add(
            VolunteerRole(
                church_id=church.id,
                name=name,
                ministry=ministry,
                description=description,
                requires_background_check=background_check,
            )
        )


def seed_templates(db: Session, church: Church) -> None:
    existing = {
        name
        for (name,) in db.query(MessageTemplate.name).filter(
            MessageTemplate.church_id == church.id
        )
    }
    for data in TEMPLATES:
        if data["name"] in existing:
            continue
        variables = extract_variables(data["subject"], data["content"])
        db.add(MessageTemplate(church_id=church.id, variables=variables, **data))


def seed(db: Session) -> Church:
    admin = seed_admin(db)
    church = seed_church(db, admin)

    for fund in FUNDS:
        create_fund(db, church, **fund)
    created = seed_members(db, church)
    seed_groups(db, church)
    seed_events(db, church)
    seed_volunteer_roles(db, church)
    seed_templates(db, church)

    db.commit()
    logger.info("Seeded %s (%s new members)", church.name, created)
    return church


if __name__ == "__main__":
    configure_logging()
    db = SessionLocal()
    try:
        church = seed(db)
        logger.info("Login: %s / %s", ADMIN_EMAIL, ADMIN_PASSWORD)
        logger.info("Church URL: /c/%s", church.slug)
    finally:
        db.close()
