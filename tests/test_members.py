from datetime import date
import pytest
from churchflow.models import (
    ActivityLog,
    Attendance,
    Church,
    ChurchRole,
    GroupMember,
    Member,
    MembershipStatus,
)
from churchflow.schemas.common import MAX_PAGE_LIMIT
from churchflow.utils.members import upsert_member
from tests.helpers import BaseTestHelpers, AuthTestsMixin


class TestListMembers(BaseTestHelpers, AuthTestsMixin):
    url = "/api/members"

    def test_list_members_ordered_by_name(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, "Zoe", "Adams")
        self._create_member(db_session, church, "Amy", "Baker")
        self._create_member(db_session, church, "Ben", "Adams")

        response = client.get(self.url, headers=headers)
        assert response.status_code == 200
        data = response.json()
        names = [(m["first_name"], m["last_name"]) for m in data["items"]]
        assert names == [("Ben", "Adams"), ("Zoe", "Adams"), ("Amy", "Baker")]
        assert data["pagination"]["total"] == 3

    def test_list_members_search(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, "Sarah", "Johnson", "sarah@example.com")
        self._create_member(db_session, church, "Mike", "Davis", "mike@example.com")

        response = client.get(self.url, params={"search": "JOHN"}, headers=headers)
        assert [m["first_name"] for m in response.json()["items"]] == ["Sarah"]

        response = client.get(self.url, params={"search": "mike@"}, headers=headers)
        assert [m["first_name"] for m in response.json()["items"]] == ["Mike"]

    def test_list_members_status_filter(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, "Vera", "Visitor",
                            membership_status=MembershipStatus.visitor)
        self._create_member(db_session, church, "Mark", "Member")

        response = client.get(self.url, params={"status": "VISITOR"}, headers=headers)
        assert [m["first_name"] for m in response.json()["items"]] == ["Vera"]

    def test_list_members_excludes_inactive(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, "Gone", "Away", is_active=False)

        response = client.get(self.url, headers=headers)
        assert response.json()["items"] == []

    def test_list_members_pagination(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        for i in range(3):
            self._create_member(db_session, church, f"Person{i}", "Same")

        response = client.get(self.url, params={"page": 2, "limit": 2}, headers=headers)
        data = response.json()
        assert len(data["items"]) == 1
        assert data["pagination"] == {
            "page": 2, "limit": 2, "total": 3, "total_pages": 2
        }

    @pytest.mark.parametrize(
        "params",
        [{"page": 0}, {"limit": -1}, {"limit": 0}, {"limit": MAX_PAGE_LIMIT + 1}],
    )
    def test_list_members_rejects_bad_paging(self, client, db_session, params):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.get(self.url, params=params, headers=headers)
        assert response.status_code == 422

    def test_list_members_counts(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        member = self._create_member(db_session, church)
        fund = self._get_default_fund(db_session, church)
        self._create_donation(db_session, church, fund, member_id=member.id)
        self._create_donation(db_session, church, fund, member_id=member.id)

        item = client.get(self.url, headers=headers).json()["items"][0]
        assert item["donation_count"] == 2
        assert item["attendance_count"] == 0

    def test_list_members_tenant_isolation(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        other_owner = self._create_user(db_session, email="other@example.com")
        other_church = self._create_church(db_session, other_owner, "Other Church")
        self._create_member(db_session, other_church, "Not", "Mine")
        self._create_member(db_session, church, "Is", "Mine")

        response = client.get(self.url, headers=headers)
        assert [m["first_name"] for m in response.json()["items"]] == ["Is"]


class TestCreateMember(BaseTestHelpers):
    url = "/api/members"

    def test_create_member_success(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)

        payload = {
            "first_name": " Sarah ",
            "last_name": "Johnson",
            "email": "sarah@example.com",
            "date_of_birth": "1990-05-01",
        }
        response = client.post(self.url, json=payload, headers=headers)
        assert response.status_code == 201
        data = response.json()
        assert data["first_name"] == "Sarah"
        assert data["membership_status"] == MembershipStatus.visitor.value

        entry = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.action == "MEMBER_CREATED")
            .one()
        )
        assert entry.entity_id == data["id"]
        assert entry.details == {"name": "Sarah Johnson"}

    def test_create_member_empty_email_is_null(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.post(
            self.url,
            json={"first_name": "No", "last_name": "Email", "email": ""},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["email"] is None

    def test_create_member_duplicate_email(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, email="sarah@example.com")

        response = client.post(
            self.url,
            json={"first_name": "Sarah", "last_name": "J", "email": "Sarah@Example.com"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "A member with this email already exists"

    def test_create_member_same_email_in_other_church(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)
        other_owner = self._create_user(db_session, email="other@example.com")
        other_church = self._create_church(db_session, other_owner, "Other Church")
        self._create_member(db_session, other_church, email="shared@example.com")

        response = client.post(
            self.url,
            json={"first_name": "Sam", "last_name": "S", "email": "shared@example.com"},
            headers=headers,
        )
        assert response.status_code == 201

    def test_create_member_limit_reached(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        church = db_session.query(Church).filter(Church.id == church.id).one()
        church.max_members = 1
        db_session.commit()
        self._create_member(db_session, church)

        response = client.post(
            self.url, json={"first_name": "One", "last_name": "Toomany"}, headers=headers
        )
        assert response.status_code == 403
        assert "Member limit reached" in response.json()["detail"]

    def test_create_member_blank_name(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.post(
            self.url, json={"first_name": " ", "last_name": "Smith"}, headers=headers
        )
        assert response.status_code == 422

    def test_create_member_unknown_family(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.post(
            self.url,
            json={"first_name": "A", "last_name": "B", "family_id": 9999},
            headers=headers,
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Family not found"


class TestMemberDetail(BaseTestHelpers):
    url = "/api/members"

    def test_get_member_detail(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        member = self._create_member(db_session, church, date_of_birth=date(1985, 3, 2))
        fund = self._get_default_fund(db_session, church)
        self._create_donation(db_session, church, fund, amount="75.50", member_id=member.id)
        group = self._create_group(db_session, church)
        self._add_to_group(db_session, group, member)

        response = client.get(f"{self.url}/{member.id}", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["recent_donations"][0]["amount"] == 75.5
        assert data["recent_donations"][0]["fund_name"] == "General Fund"
        assert data["groups"][0]["name"] == "Young Adults"
        assert data["groups"][0]["role"] == "MEMBER"
        assert data["is_volunteer"] is False

    def test_get_member_other_church(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)
        other_owner = self._create_user(db_session, email="other@example.com")
        other_church = self._create_church(db_session, other_owner, "Other Church")
        member = self._create_member(db_session, other_church)

        response = client.get(f"{self.url}/{member.id}", headers=headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Member not found"


class TestUpdateMember(BaseTestHelpers):
    url = "/api/members"

    def test_update_member(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        member = self._create_member(db_session, church)

        response = client.patch(
            f"{self.url}/{member.id}",
            json={"phone": "555-0100", "membership_status": "REGULAR_ATTENDER"},
            headers=headers,
        )
        assert response.status_code == 200
        db_session.refresh(member)
        assert member.phone == "555-0100"
        assert member.membership_status == MembershipStatus.regular_attender

    def test_update_member_email_taken(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, "A", "One", email="a@example.com")
        member = self._create_member(db_session, church, "B", "Two", email="b@example.com")

        response = client.patch(
            f"{self.url}/{member.id}", json={"email": "a@example.com"}, headers=headers
        )
        assert response.status_code == 400

        # Keeping the member's own email is fine
        response = client.patch(
            f"{self.url}/{member.id}", json={"email": "b@example.com"}, headers=headers
        )
        assert response.status_code == 200


class TestDeleteMember(BaseTestHelpers):
    url = "/api/members"

    def test_delete_member_keeps_donations(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        member = self._create_member(db_session, church)
        fund = self._get_default_fund(db_session, church)
        donation = self._create_donation(db_session, church, fund, member_id=member.id)
        group = self._create_group(db_session, church)
        self._add_to_group(db_session, group, member)
        db_session.add(Attendance(church_id=church.id, member_id=member.id, date=date.today()))
        db_session.commit()
        member_id = member.id

        response = client.delete(f"{self.url}/{member_id}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        assert db_session.query(Member).filter(Member.id == member_id).first() is None
        assert db_session.query(GroupMember).count() == 0
        assert db_session.query(Attendance).count() == 0

        db_session.refresh(donation)
        assert donation.member_id is None

    def test_delete_member_not_found(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.delete(f"{self.url}/9999", headers=headers)
        assert response.status_code == 404

    def test_viewer_can_read_members(self, client, db_session):
        _, church, headers = self._setup_church_user(
            client, db_session, role=ChurchRole.viewer
        )
        self._create_member(db_session, church)

        response = client.get(self.url, headers=headers)
        assert response.status_code == 200


class TestUpsertMember(BaseTestHelpers):
    def test_upsert_creates_then_returns_existing(self, db_session):
        owner = self._create_user(db_session)
        church = self._create_church(db_session, owner)
        data = {"first_name": "Sarah", "last_name": "Johnson", "email": "s@example.com"}

        member, created = upsert_member(db_session, church.id, data)
        assert created is True
        assert member.membership_status == MembershipStatus.visitor

        again, created = upsert_member(
            db_session, church.id, {**data, "first_name": "Changed"}
        )
        assert created is False
        assert again.id == member.id
        assert again.first_name == "Sarah"
