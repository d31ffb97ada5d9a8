from datetime import timedelta
from decimal import Decimal
from churchflow.utils.auth import hash_password
from churchflow.utils.churches import create_church_for_owner
from churchflow.utils.dates import utcnow
from churchflow.models import (
    ChurchRole,
    ChurchUser,
    Communication,
    CommunicationStatus,
    Donation,
    DonationFund,
    Event,
    Group,
    GroupMember,
    Member,
    MembershipStatus,
    PaymentStatus,
    SubscriptionTier,
    User,
    Volunteer,
    VolunteerRole,
    VolunteerShift,
    WebPage,
)


class BaseTestHelpers:
    email = "testuser@example.com"
    password = "password123"

    # --- Helper Methods for Test Setup ---
    def _create_user(self, db_session, email=None, password=None, name="Test User"):
        user = User(
            email=email or self.email,
            name=name,
            hashed_password=hash_password(password or self.password),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    def _create_church(self, db_session, owner, name="Test Church", **fields):
        church = create_church_for_owner(
            db_session, owner, name, tier=SubscriptionTier.standard, **fields
        )
        db_session.commit()
        db_session.refresh(church)
        return church

    def _add_church_user(self, db_session, user, church, role=ChurchRole.viewer):
        church_user = ChurchUser(user_id=user.id, church_id=church.id, role=role)
        db_session.add(church_user)
        db_session.commit()
        return church_user

    def _get_access_token_from_login(self, client, email, password) -> str:
        response = client.post(
            "/api/auth/login",
            data={"username": email, "password": password},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 200
        data = response.json()
        return data["access_token"]

    def _auth_headers(self, token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    def _setup_church_user(
        self,
        client,
        db_session,
        role=ChurchRole.owner,
        email=None,
        church_name="Test Church",
    ):
        """
        Creates a user with a church and logs them in.

        Returns (user, church, headers). Non-owner roles get a separate
        owner account for the church.
        """
        email = email or self.email
        if role == ChurchRole.owner:
            user = self._create_user(db_session, email=email)
            church = self._create_church(db_session, user, church_name)
        else:
            owner = self._create_user(db_session, email=f"owner.{email}")
            church = self._create_church(db_session, owner, church_name)
            user = self._create_user(db_session, email=email)
            self._add_church_user(db_session, user, church, role)

        token = self._get_access_token_from_login(client, email, self.password)
        client.cookies.clear()  # tests authenticate with the bearer header
        return user, church, self._auth_headers(token)

    def _create_member(
        self,
        db_session,
        church,
        first_name="John",
        last_name="Smith",
        email=None,
        **fields,
    ):
        fields.setdefault("membership_status", MembershipStatus.member)
        member = Member(
            church_id=church.id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            **fields,
        )
        db_session.add(member)
        db_session.commit()
        db_session.refresh(member)
        return member

    def _create_event(
        self, db_session, church, title="Sunday Service", start_date=None, **fields
    ):
        start_date = start_date or utcnow() + timedelta(days=3)
        fields.setdefault("end_date", start_date + timedelta(hours=1))
        event = Event(church_id=church.id, title=title, start_date=start_date, **fields)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    def _get_default_fund(self, db_session, church):
        return (
            db_session.query(DonationFund)
            .filter(
                DonationFund.church_id == church.id,
                DonationFund.is_default.is_(True),
            )
            .one()
        )

    def _create_fund(self, db_session, church, name="Missions Fund", **fields):
        fund = DonationFund(church_id=church.id, name=name, **fields)
        db_session.add(fund)
        db_session.commit()
        db_session.refresh(fund)
        return fund

    def _create_donation(
        self,
        db_session,
        church,
        fund,
        amount="100.00",
        payment_status=PaymentStatus.completed,
        donated_at=None,
        **fields,
    ):
        donation = Donation(
            church_id=church.id,
            fund_id=fund.id,
            amount=Decimal(amount),
            payment_status=payment_status,
            donated_at=donated_at or utcnow(),
            **fields,
        )
        db_session.add(donation)
        db_session.commit()
        db_session.refresh(donation)
        return donation

    def _create_role(self, db_session, church, name="Greeter", **fields):
        role = VolunteerRole(church_id=church.id, name=name, **fields)
        db_session.add(role)
        db_session.commit()
        db_session.refresh(role)
        return role

    def _create_volunteer(self, db_session, church, member, **fields):
        volunteer = Volunteer(church_id=church.id, member_id=member.id, **fields)
        db_session.add(volunteer)
        db_session.commit()
        db_session.refresh(volunteer)
        return volunteer

    def _create_shift(
        self, db_session, volunteer, role, start_time=None, hours=2, **fields
    ):
        start_time = start_time or utcnow() + timedelta(days=1)
        shift = VolunteerShift(
            church_id=volunteer.church_id,
            volunteer_id=volunteer.id,
            role_id=role.id,
            start_time=start_time,
            end_time=start_time + timedelta(hours=hours),
            **fields,
        )
        db_session.add(shift)
        db_session.commit()
        db_session.refresh(shift)
        return shift

    def _create_group(self, db_session, church, name="Young Adults", **fields):
        group = Group(church_id=church.id, name=name, **fields)
        db_session.add(group)
        db_session.commit()
        db_session.refresh(group)
        return group

    def _add_to_group(self, db_session, group, member):
        membership = GroupMember(group_id=group.id, member_id=member.id)
        db_session.add(membership)
        db_session.commit()
        return membership

    def _create_page(
        self, db_session, church, title="About", slug="/about", content="[]", **fields
    ):
        page = WebPage(
            church_id=church.id, title=title, slug=slug, content=content, **fields
        )
        db_session.add(page)
        db_session.commit()
        db_session.refresh(page)
        return page

    def _create_communication(
        self,
        db_session,
        church,
        subject="Weekly update",
        status=CommunicationStatus.draft,
        **fields,
    ):
        communication = Communication(
            church_id=church.id,
            subject=subject,
            content="Hello {{firstName}}",
            status=status,
            **fields,
        )
        db_session.add(communication)
        db_session.commit()
        db_session.refresh(communication)
        return communication


class AuthTestsMixin:
    http_method = "get"

    def _request(self, client, **kwargs):
        return getattr(client, self.http_method)(self.url, **kwargs)

    def test_unauthorized_access_no_token(self, client):
        # No token provided
        response = self._request(client)
        assert response.status_code == 401

    def test_unauthorized_access_invalid_token(self, client):
        # Invalid token provided
        response = self._request(
            client, headers={"Authorization": "Bearer invalidtoken"}
        )
        assert response.status_code == 401

    def test_user_without_church(self, client, db_session):
        # Valid login but no church association yet
        self._create_user(db_session, email="nochurch@example.com")
        token = self._get_access_token_from_login(
            client, "nochurch@example.com", self.password
        )
        client.cookies.clear()

        response = self._request(client, headers=self._auth_headers(token))
        assert response.status_code == 404
        assert response.json()["detail"] == "Church not found"
