import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    Numeric,
    Text,
    JSON,
    Index,
    UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from churchflow.database import Base


def _now():
    return datetime.now(timezone.utc)


def enum_type(enum_cls):
    # Stored as VARCHAR of the enum values (no native PG enum type to migrate)
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=30,
        values_callable=lambda e: [member.value for member in e],
    )


# --- Enums ---
class ChurchRole(enum.IntEnum):
    viewer = 0
    volunteer = 1
    staff = 2
    pastor = 3
    admin = 4
    owner = 5


class SubscriptionTier(str, enum.Enum):
    free = "FREE"
    basic = "BASIC"
    standard = "STANDARD"
    premium = "PREMIUM"
    enterprise = "ENTERPRISE"


class SubscriptionStatus(str, enum.Enum):
    trial = "TRIAL"
    active = "ACTIVE"
    past_due = "PAST_DUE"
    cancelled = "CANCELLED"


class MembershipStatus(str, enum.Enum):
    visitor = "VISITOR"
    regular_attender = "REGULAR_ATTENDER"
    member = "MEMBER"
    inactive = "INACTIVE"


class Gender(str, enum.Enum):
    male = "MALE"
    female = "FEMALE"


class EventCategory(str, enum.Enum):
    service = "SERVICE"
    prayer = "PRAYER"
    youth = "YOUTH"
    outreach = "OUTREACH"
    small_group = "SMALL_GROUP"
    class_ = "CLASS"
    social = "SOCIAL"
    other = "OTHER"


class PaymentMethod(str, enum.Enum):
    cash = "CASH"
    check = "CHECK"
    card = "CARD"
    bank_transfer = "BANK_TRANSFER"
    online = "ONLINE"
    other = "OTHER"


class PaymentStatus(str, enum.Enum):
    pending = "PENDING"
    completed = "COMPLETED"
    failed = "FAILED"
    refunded = "REFUNDED"


class VolunteerStatus(str, enum.Enum):
    active = "ACTIVE"
    inactive = "INACTIVE"
    on_leave = "ON_LEAVE"


class ShiftStatus(str, enum.Enum):
    scheduled = "SCHEDULED"
    confirmed = "CONFIRMED"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class MessageChannel(str, enum.Enum):
    email = "EMAIL"
    sms = "SMS"
    push = "PUSH"


class CommunicationStatus(str, enum.Enum):
    draft = "DRAFT"
    scheduled = "SCHEDULED"
    sending = "SENDING"
    sent = "SENT"
    failed = "FAILED"


class GroupCategory(str, enum.Enum):
    small_group = "SMALL_GROUP"
    ministry_team = "MINISTRY_TEAM"
    children = "CHILDREN"
    youth = "YOUTH"
    men = "MEN"
    women = "WOMEN"
    class_ = "CLASS"
    other = "OTHER"


class GroupRole(str, enum.Enum):
    leader = "LEADER"
    member = "MEMBER"


class CheckInMethod(str, enum.Enum):
    manual = "MANUAL"
    kiosk = "KIOSK"
    qr = "QR"
    offline_sync = "OFFLINE_SYNC"


class PrayerStatus(str, enum.Enum):
    pending = "PENDING"
    praying = "PRAYING"
    answered = "ANSWERED"


# --- Tenant root and accounts ---
class Church(Base):
    __tablename__ = "churches"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    slug = Column(String(160), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    timezone = Column(String(64), nullable=False, default="America/New_York")
    logo = Column(String(255), nullable=True)
    primary_color = Column(String(20), nullable=True)
    subscription_tier = Column(
        enum_type(SubscriptionTier), nullable=False, default=SubscriptionTier.free
    )
    subscription_status = Column(
        enum_type(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.trial,
    )
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    enabled_modules = Column(JSON, nullable=False, default=list)
    max_members = Column(Integer, nullable=False, default=500)
    max_storage = Column(Integer, nullable=False, default=25)
    created_at = Column(DateTime(timezone=True), default=_now)

    church_users = relationship(
        "ChurchUser", back_populates="church", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Church(id={self.id}, slug='{self.slug}')>"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(150), nullable=False)
    hashed_password = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    refreshtokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan"
    )
    church_users = relationship(
        "ChurchUser", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    token_hash = Column(String(255), nullable=False)
    revoked = Column(Boolean, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    user = relationship("User", back_populates="refreshtokens")


class ChurchUser(Base):
    __tablename__ = "church_users"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    role = Column(Integer, default=ChurchRole.viewer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        UniqueConstraint("user_id", "church_id", name="uq_church_users_user_church"),
    )

    user = relationship("User", back_populates="church_users")
    church = relationship("Church", back_populates="church_users")


# --- People ---
class Family(Base):
    __tablename__ = "families"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    name = Column(String(150), nullable=False)

    members = relationship("Member", back_populates="family")


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    alternate_phone = Column(String(50), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(enum_type(Gender), nullable=True)
    marital_status = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    membership_status = Column(
        enum_type(MembershipStatus),
        nullable=False,
        default=MembershipStatus.visitor,
    )
    membership_date = Column(Date, nullable=True)
    baptism_date = Column(Date, nullable=True)
    family_id = Column(Integer, ForeignKey("families.id"), nullable=True)
    family_role = Column(String(30), nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    interests = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    photo = Column(String(255), nullable=True)
    giving_badge = Column(String(30), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        UniqueConstraint("church_id", "email", name="uq_members_church_email"),
        Index("idx_members_church_name", "church_id", "last_name", "first_name"),
    )

    family = relationship("Family", back_populates="members")
    group_memberships = relationship(
        "GroupMember", back_populates="member", cascade="all, delete-orphan"
    )
    attendances = relationship(
        "Attendance", back_populates="member", cascade="all, delete-orphan"
    )
    check_ins = relationship(
        "CheckIn", back_populates="member", cascade="all, delete-orphan"
    )
    donations = relationship("Donation", back_populates="member")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Member(id={self.id}, name='{self.full_name}')>"


# --- Events ---
class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(200), nullable=True)
    address = Column(String(255), nullable=True)
    category = Column(
        enum_type(EventCategory), nullable=False, default=EventCategory.other
    )
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    all_day = Column(Boolean, nullable=False, default=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_rule = Column(String(255), nullable=True)  # stored verbatim
    requires_registration = Column(Boolean, nullable=False, default=False)
    max_attendees = Column(Integer, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    is_published = Column(Boolean, nullable=False, default=True)
    publish_to_website = Column(Boolean, nullable=False, default=False)
    enable_check_in = Column(Boolean, nullable=False, default=False)
    check_in_code = Column(String(10), unique=True, nullable=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __table_args__ = (Index("idx_events_church_start", "church_id", "start_date"),)

    group = relationship("Group")
    check_ins = relationship(
        "CheckIn", back_populates="event", cascade="all, delete-orphan"
    )
    attendances = relationship(
        "Attendance", back_populates="event", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}')>"


# --- Giving ---
class DonationFund(Base):
    __tablename__ = "donation_funds"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    goal = Column(Numeric(12, 2), nullable=True)
    raised = Column(Numeric(12, 2), nullable=False, default=0)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        UniqueConstraint("church_id", "name", name="uq_donation_funds_church_name"),
    )

    donations = relationship("Donation", back_populates="fund")


class Donation(Base):
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(
        enum_type(PaymentMethod), nullable=False, default=PaymentMethod.cash
    )
    payment_status = Column(
        enum_type(PaymentStatus), nullable=False, default=PaymentStatus.completed
    )
    donor_name = Column(String(150), nullable=True)
    donor_email = Column(String(255), nullable=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    fund_id = Column(Integer, ForeignKey("donation_funds.id"), nullable=False)
    notes = Column(Text, nullable=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String(30), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    donated_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        Index("idx_donations_church_date", "church_id", "donated_at"),
        Index("idx_donations_church_fund", "church_id", "fund_id"),
    )

    member = relationship("Member", back_populates="donations")
    fund = relationship("DonationFund", back_populates="donations")


# --- Volunteers ---
class VolunteerRole(Base):
    __tablename__ = "volunteer_roles"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    ministry = Column(String(100), nullable=True)
    requires_background_check = Column(Boolean, nullable=False, default=False)
    required_training = Column(JSON, nullable=False, default=list)

    shifts = relationship("VolunteerShift", back_populates="role")


class Volunteer(Base):
    __tablename__ = "volunteers"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    skills = Column(JSON, nullable=False, default=list)
    availability = Column(String(255), nullable=True)
    preferred_roles = Column(JSON, nullable=False, default=list)
    background_check = Column(Boolean, nullable=False, default=False)
    background_check_date = Column(Date, nullable=True)
    training_completed = Column(JSON, nullable=False, default=list)
    status = Column(
        enum_type(VolunteerStatus), nullable=False, default=VolunteerStatus.active
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        UniqueConstraint("church_id", "member_id", name="uq_volunteers_church_member"),
    )

    member = relationship("Member")
    shifts = relationship(
        "VolunteerShift", back_populates="volunteer", cascade="all, delete-orphan"
    )


class VolunteerShift(Base):
    __tablename__ = "volunteer_shifts"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    volunteer_id = Column(Integer, ForeignKey("volunteers.id"), nullable=False)
    role_id = Column(Integer, ForeignKey("volunteer_roles.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        enum_type(ShiftStatus), nullable=False, default=ShiftStatus.scheduled
    )
    notes = Column(Text, nullable=True)

    __table_args__ = (Index("idx_shifts_church_start", "church_id", "start_time"),)

    volunteer = relationship("Volunteer", back_populates="shifts")
    role = relationship("VolunteerRole", back_populates="shifts")
    event = relationship("Event")


# --- Communications ---
class Communication(Base):
    __tablename__ = "communications"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    channel = Column(
        enum_type(MessageChannel), nullable=False, default=MessageChannel.email
    )
    subject = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    recipient_type = Column(String(30), nullable=False, default="all")
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True)
    status = Column(
        enum_type(CommunicationStatus),
        nullable=False,
        default=CommunicationStatus.draft,
    )
    recipient_count = Column(Integer, nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (Index("idx_communications_church_status", "church_id", "status"),)


class MessageTemplate(Base):
    __tablename__ = "message_templates"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    name = Column(String(150), nullable=False)
    category = Column(String(100), nullable=True)
    channel = Column(
        enum_type(MessageChannel), nullable=False, default=MessageChannel.email
    )
    subject = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    variables = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("church_id", "name", name="uq_message_templates_church_name"),
    )


# --- Groups ---
class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(
        enum_type(GroupCategory), nullable=False, default=GroupCategory.small_group
    )
    meeting_day = Column(String(30), nullable=True)
    meeting_time = Column(String(30), nullable=True)
    location = Column(String(200), nullable=True)
    leader_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    capacity = Column(Integer, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        UniqueConstraint("church_id", "name", name="uq_groups_church_name"),
    )

    leader = relationship("Member")
    members = relationship(
        "GroupMember", back_populates="group", cascade="all, delete-orphan"
    )


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    role = Column(enum_type(GroupRole), nullable=False, default=GroupRole.member)
    joined_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (
        UniqueConstraint("group_id", "member_id", name="uq_group_members_group_member"),
    )

    group = relationship("Group", back_populates="members")
    member = relationship("Member", back_populates="group_memberships")


# --- Website ---
class WebPage(Base):
    __tablename__ = "web_pages"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False)
    template = Column(String(50), nullable=False, default="content")
    content = Column(Text, nullable=False, default="[]")  # JSON array of blocks
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(String(500), nullable=True)
    is_home_page = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=False)
    show_in_nav = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __table_args__ = (
        UniqueConstraint("church_id", "slug", name="uq_web_pages_church_slug"),
    )


class MediaFile(Base):
    __tablename__ = "media_files"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    filename = Column(String(255), nullable=False)
    url = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False, default=0)  # bytes
    alt_text = Column(String(255), nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)


# --- Attendance ---
class CheckIn(Base):
    __tablename__ = "check_ins"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True)
    check_in_time = Column(DateTime(timezone=True), nullable=False, default=_now)
    check_out_time = Column(DateTime(timezone=True), nullable=True)
    checked_out_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    method = Column(
        enum_type(CheckInMethod), nullable=False, default=CheckInMethod.manual
    )
    is_child_check_in = Column(Boolean, nullable=False, default=False)
    security_code = Column(String(10), nullable=True)
    parent_name = Column(String(150), nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_check_ins_church_time", "church_id", "check_in_time"),
        Index("idx_check_ins_member_event", "member_id", "event_id"),
    )

    member = relationship("Member", back_populates="check_ins")
    event = relationship("Event", back_populates="check_ins")


class Attendance(Base):
    __tablename__ = "attendances"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True)
    date = Column(Date, nullable=False)
    check_in_time = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_attendances_church_date", "church_id", "date"),)

    member = relationship("Member", back_populates="attendances")
    event = relationship("Event", back_populates="attendances")


# --- Prayer ---
class PrayerRequest(Base):
    __tablename__ = "prayer_requests"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=True)
    status = Column(
        enum_type(PrayerStatus), nullable=False, default=PrayerStatus.pending
    )
    is_private = Column(Boolean, nullable=False, default=False)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    prayer_count = Column(Integer, nullable=False, default=0)
    answered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    member = relationship("Member")


# --- Audit ---
class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    church_id = Column(Integer, ForeignKey("churches.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)

    __table_args__ = (Index("idx_activity_church_created", "church_id", "created_at"),)

    user = relationship("User")
