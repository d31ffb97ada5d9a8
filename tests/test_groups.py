from churchflow.models import Event, Group, GroupCategory, GroupMember, GroupRole
from tests.helpers import BaseTestHelpers, AuthTestsMixin


class TestListGroups(BaseTestHelpers, AuthTestsMixin):
    url = "/api/groups"

    def test_list_groups_with_counts_and_categories(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        youth = self._create_group(db_session, church, "Youth", category=GroupCategory.youth)
        self._create_group(db_session, church, "Alpha", category=GroupCategory.class_)
        self._add_to_group(db_session, youth, self._create_member(db_session, church))

        response = client.get(self.url, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert [g["name"] for g in data["groups"]] == ["Alpha", "Youth"]
        assert [g["member_count"] for g in data["groups"]] == [0, 1]
        assert data["categories"] == ["CLASS", "YOUTH"]

    def test_list_groups_filters(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_group(db_session, church, "Men's Breakfast", category=GroupCategory.men)
        self._create_group(
            db_session, church, "Choir", description="Sunday worship team",
            category=GroupCategory.ministry_team,
        )

        data = client.get(self.url, params={"category": "MEN"}, headers=headers).json()
        assert [g["name"] for g in data["groups"]] == ["Men's Breakfast"]

        data = client.get(self.url, params={"search": "worship"}, headers=headers).json()
        assert [g["name"] for g in data["groups"]] == ["Choir"]


class TestCreateGroup(BaseTestHelpers):
    url = "/api/groups"

    def test_create_group_with_leader(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        leader = self._create_member(db_session, church, "Lead", "Er")

        response = client.post(
            self.url, json={"name": "Young Adults", "leader_id": leader.id}, headers=headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["leader"]["first_name"] == "Lead"
        assert data["category"] == GroupCategory.small_group.value
        assert data["member_count"] == 0

    def test_create_group_leader_from_other_church(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)
        other_owner = self._create_user(db_session, email="other@example.com")
        other_church = self._create_church(db_session, other_owner, "Other Church")
        outsider = self._create_member(db_session, other_church)

        response = client.post(
            self.url, json={"name": "Group", "leader_id": outsider.id}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Leader must be a member of this church"

    def test_create_group_duplicate_name(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_group(db_session, church, "Young Adults")

        response = client.post(self.url, json={"name": "Young Adults"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "A group with this name already exists"


class TestGroupDetail(BaseTestHelpers):
    url = "/api/groups"

    def test_group_detail_and_update(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        group = self._create_group(db_session, church)
        self._add_to_group(db_session, group, self._create_member(db_session, church))

        data = client.get(f"{self.url}/{group.id}", headers=headers).json()
        assert data["member_count"] == 1
        assert data["members"][0]["member"]["first_name"] == "John"

        response = client.patch(
            f"{self.url}/{group.id}",
            json={"meeting_day": "Tuesday", "name": None},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["meeting_day"] == "Tuesday"
        assert response.json()["name"] == "Young Adults"

    def test_delete_group_unlinks_events(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        group = self._create_group(db_session, church)
        self._add_to_group(db_session, group, self._create_member(db_session, church))
        event = self._create_event(db_session, church, group_id=group.id)
        group_id = group.id

        response = client.delete(f"{self.url}/{group_id}", headers=headers)
        assert response.status_code == 200
        assert db_session.query(Group).filter(Group.id == group_id).first() is None
        assert db_session.query(GroupMember).count() == 0

        db_session.refresh(event)
        assert event.group_id is None
        assert db_session.query(Event).count() == 1


class TestGroupMembers(BaseTestHelpers):
    url = "/api/groups"

    def test_add_member(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        group = self._create_group(db_session, church)
        member = self._create_member(db_session, church)

        response = client.post(
            f"{self.url}/{group.id}/members",
            json={"member_id": member.id, "role": "LEADER"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["role"] == GroupRole.leader.value

        response = client.post(
            f"{self.url}/{group.id}/members", json={"member_id": member.id}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Member is already in this group"

    def test_add_member_at_capacity(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        group = self._create_group(db_session, church, capacity=1)
        self._add_to_group(db_session, group, self._create_member(db_session, church))
        newcomer = self._create_member(db_session, church, "New", "Comer")

        response = client.post(
            f"{self.url}/{group.id}/members", json={"member_id": newcomer.id}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Group is at capacity"

    def test_list_and_remove_members(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        group = self._create_group(db_session, church)
        zed = self._create_member(db_session, church, "Zed", "Young")
        amy = self._create_member(db_session, church, "Amy", "Adams")
        self._add_to_group(db_session, group, zed)
        self._add_to_group(db_session, group, amy)

        data = client.get(f"{self.url}/{group.id}/members", headers=headers).json()
        assert [m["member"]["last_name"] for m in data] == ["Adams", "Young"]

        response = client.delete(
            f"{self.url}/{group.id}/members",
            params={"member_id": zed.id},
            headers=headers,
        )
        assert response.status_code == 200

        response = client.delete(
            f"{self.url}/{group.id}/members",
            params={"member_id": zed.id},
            headers=headers,
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Member is not in this group"
