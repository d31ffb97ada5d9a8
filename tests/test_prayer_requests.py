from churchflow.models import ChurchRole, PrayerRequest, PrayerStatus
from tests.helpers import BaseTestHelpers, AuthTestsMixin


class PrayerTestHelpers(BaseTestHelpers):
    def _create_prayer(self, db_session, church, title="Healing", member=None, **fields):
        prayer = PrayerRequest(
            church_id=church.id,
            member_id=member.id if member else None,
            title=title,
            description="Please pray",
            status=PrayerStatus.pending,
            **fields,
        )
        db_session.add(prayer)
        db_session.commit()
        db_session.refresh(prayer)
        return prayer


class TestCreatePrayerRequest(PrayerTestHelpers, AuthTestsMixin):
    url = "/api/prayer-requests"

    def test_create_links_own_member(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        member = self._create_member(db_session, church, "Test", "User", email=self.email)

        payload = {"title": "Job search", "description": "Guidance needed"}
        response = client.post(self.url, json=payload, headers=headers)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == PrayerStatus.pending.value
        assert data["member_id"] == member.id
        assert data["member_name"] == "Test User"
        assert data["prayer_count"] == 0

    def test_create_anonymous_hides_member(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_member(db_session, church, "Test", "User", email=self.email)

        payload = {"title": "Private", "description": "Matter", "is_anonymous": True}
        data = client.post(self.url, json=payload, headers=headers).json()
        assert data["member_id"] is None
        assert data["member_name"] is None

    def test_create_blank_title(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.post(
            self.url, json={"title": " ", "description": "x"}, headers=headers
        )
        assert response.status_code == 422


class TestPrayerVisibility(PrayerTestHelpers):
    url = "/api/prayer-requests"

    def test_viewer_sees_public_and_own_private(self, client, db_session):
        _, church, headers = self._setup_church_user(
            client, db_session, role=ChurchRole.viewer
        )
        me = self._create_member(db_session, church, "Me", "Myself", email=self.email)
        someone = self._create_member(db_session, church, "Some", "One")
        self._create_prayer(db_session, church, "Public", someone)
        self._create_prayer(db_session, church, "Mine", me, is_private=True)
        hidden = self._create_prayer(db_session, church, "Hidden", someone, is_private=True)

        data = client.get(self.url, headers=headers).json()
        assert sorted(p["title"] for p in data["items"]) == ["Mine", "Public"]

        response = client.get(f"{self.url}/{hidden.id}", headers=headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Prayer request not found"

    def test_pastor_sees_private(self, client, db_session):
        _, church, headers = self._setup_church_user(
            client, db_session, role=ChurchRole.pastor
        )
        hidden = self._create_prayer(db_session, church, "Hidden", is_private=True)

        data = client.get(self.url, headers=headers).json()
        assert [p["title"] for p in data["items"]] == ["Hidden"]
        assert client.get(f"{self.url}/{hidden.id}", headers=headers).status_code == 200

    def test_status_filter(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        self._create_prayer(db_session, church, "Open")
        answered = self._create_prayer(db_session, church, "Done")
        answered.status = PrayerStatus.answered
        db_session.commit()

        data = client.get(self.url, params={"status": "ANSWERED"}, headers=headers).json()
        assert [p["title"] for p in data["items"]] == ["Done"]


class TestUpdatePrayerRequest(PrayerTestHelpers):
    url = "/api/prayer-requests"

    def test_answering_sets_answered_at(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        prayer = self._create_prayer(db_session, church)

        data = client.patch(
            f"{self.url}/{prayer.id}", json={"status": "ANSWERED"}, headers=headers
        ).json()
        assert data["status"] == "ANSWERED"
        assert data["answered_at"] is not None

        data = client.patch(
            f"{self.url}/{prayer.id}", json={"status": "PRAYING"}, headers=headers
        ).json()
        assert data["answered_at"] is None

    def test_pray_increments_count(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        prayer = self._create_prayer(db_session, church)

        client.post(f"{self.url}/{prayer.id}/pray", headers=headers)
        response = client.post(f"{self.url}/{prayer.id}/pray", headers=headers)
        assert response.status_code == 200
        assert response.json()["prayer_count"] == 2

    def test_delete(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        prayer = self._create_prayer(db_session, church)
        prayer_id = prayer.id

        response = client.delete(f"{self.url}/{prayer_id}", headers=headers)
        assert response.status_code == 200
        assert db_session.query(PrayerRequest).count() == 0
