from datetime import datetime, timedelta, timezone
from churchflow.models import CheckIn, Event, EventCategory
from churchflow.utils.codes import CODE_ALPHABET, CHECK_IN_CODE_LENGTH
from churchflow.utils.dates import utcnow
from churchflow.utils.ical import build_calendar, escape_text
from tests.helpers import BaseTestHelpers, AuthTestsMixin


class TestCreateEvent(BaseTestHelpers, AuthTestsMixin):
    url = "/api/events"

    def test_create_event_defaults_end_to_start(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        payload = {"title": "Sunday Service", "start_date": "2030-01-06T15:00:00Z"}
        response = client.post(self.url, json=payload, headers=headers)
        assert response.status_code == 201
        data = response.json()
        assert data["category"] == EventCategory.other.value
        assert data["check_in_code"] is None

        event = db_session.query(Event).filter(Event.id == data["id"]).one()
        assert event.end_date == event.start_date

    def test_create_event_with_check_in_gets_code(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        payload = {
            "title": "Kids Church",
            "start_date": "2030-01-06T15:00:00Z",
            "end_date": "2030-01-06T16:30:00Z",
            "category": "SERVICE",
            "enable_check_in": True,
        }
        response = client.post(self.url, json=payload, headers=headers)
        assert response.status_code == 201
        code = response.json()["check_in_code"]
        assert len(code) == CHECK_IN_CODE_LENGTH
        assert all(c in CODE_ALPHABET for c in code)

    def test_create_event_blank_title(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.post(
            self.url,
            json={"title": "  ", "start_date": "2030-01-06T15:00:00Z"},
            headers=headers,
        )
        assert response.status_code == 422

    def test_create_event_unknown_group(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.post(
            self.url,
            json={"title": "Study", "start_date": "2030-01-06T15:00:00Z", "group_id": 999},
            headers=headers,
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Group not found"


class TestListEvents(BaseTestHelpers):
    url = "/api/events"

    def test_upcoming_and_past(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        now = utcnow()
        self._create_event(db_session, church, "Later", now + timedelta(days=10))
        self._create_event(db_session, church, "Soon", now + timedelta(days=1))
        self._create_event(db_session, church, "Yesterday", now - timedelta(days=1))
        self._create_event(db_session, church, "Last week", now - timedelta(days=7))

        response = client.get(self.url, params={"upcoming": True}, headers=headers)
        assert [e["title"] for e in response.json()] == ["Soon", "Later"]

        response = client.get(self.url, params={"past": True}, headers=headers)
        assert [e["title"] for e in response.json()] == ["Yesterday", "Last week"]

        response = client.get(self.url, headers=headers)
        assert len(response.json()) == 4

    def test_category_filter_and_check_in_count(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        service = self._create_event(
            db_session, church, "Service", category=EventCategory.service
        )
        self._create_event(db_session, church, "Picnic", category=EventCategory.social)
        member = self._create_member(db_session, church)
        db_session.add(
            CheckIn(church_id=church.id, member_id=member.id, event_id=service.id)
        )
        db_session.commit()

        response = client.get(self.url, params={"category": "SERVICE"}, headers=headers)
        data = response.json()
        assert [e["title"] for e in data] == ["Service"]
        assert data[0]["check_in_count"] == 1


class TestUpdateDeleteEvent(BaseTestHelpers):
    url = "/api/events"

    def test_enabling_check_in_assigns_code(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        event = self._create_event(db_session, church)

        response = client.patch(
            f"{self.url}/{event.id}", json={"enable_check_in": True}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["check_in_code"]

    def test_delete_event(self, client, db_session):
        _, church, headers = self._setup_church_user(client, db_session)
        event = self._create_event(db_session, church)
        event_id = event.id

        response = client.delete(f"{self.url}/{event_id}", headers=headers)
        assert response.status_code == 200
        assert db_session.query(Event).filter(Event.id == event_id).first() is None

        response = client.get(f"{self.url}/{event_id}", headers=headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Event not found"


class TestICalFeed(BaseTestHelpers):
    url = "/api/events/ical"

    def test_ical_requires_church(self, client):
        response = client.get(self.url)
        assert response.status_code == 400
        assert response.json()["detail"] == "Church ID or slug is required"

    def test_ical_unknown_church(self, client):
        response = client.get(self.url, params={"slug": "nowhere"})
        assert response.status_code == 404

    def test_ical_feed(self, client, db_session):
        owner = self._create_user(db_session)
        church = self._create_church(db_session, owner, "Grace Chapel")
        start = datetime(2030, 1, 6, 15, 0, tzinfo=timezone.utc)
        self._create_event(
            db_session,
            church,
            "Sunday Service",
            start,
            description="Worship, prayer; and teaching",
            location="Main Hall",
            publish_to_website=True,
            is_recurring=True,
            recurrence_rule="RRULE:FREQ=WEEKLY;BYDAY=SU",
        )
        self._create_event(db_session, church, "Staff Meeting", start)

        response = client.get(self.url, params={"slug": church.slug})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        assert 'filename="grace-chapel-events.ics"' in (
            response.headers["content-disposition"]
        )

        body = response.text
        assert body.startswith("BEGIN:VCALENDAR\r\n")
        assert body.endswith("END:VCALENDAR\r\n")
        assert "SUMMARY:Sunday Service" in body
        assert "DTSTART:20300106T150000Z" in body
        assert "DTEND:20300106T160000Z" in body
        assert "DESCRIPTION:Worship\\, prayer\\; and teaching" in body
        assert "\r\nRRULE:FREQ=WEEKLY;BYDAY=SU\r\n" in body
        # Only events published to the website are in the feed
        assert "Staff Meeting" not in body

    def test_ical_by_church_id(self, client, db_session):
        owner = self._create_user(db_session)
        church = self._create_church(db_session, owner)

        response = client.get(self.url, params={"church_id": church.id})
        assert response.status_code == 200
        assert "X-WR-CALNAME:Test Church Events" in response.text


class TestBuildCalendar:
    def test_escape_text(self):
        assert escape_text("a\\b;c,d\ne") == "a\\\\b\\;c\\,d\\ne"
        assert escape_text(None) == ""

    def test_event_without_end_lasts_an_hour(self):
        start = datetime(2030, 3, 1, 9, 0, tzinfo=timezone.utc)
        event = Event(id=7, title="Prayer", start_date=start, end_date=None)

        body = build_calendar("Grace", None, [event])
        assert "UID:7@churchflow.app" in body
        assert "DTEND:20300301T100000Z" in body
        assert "X-WR-TIMEZONE:America/New_York" in body
