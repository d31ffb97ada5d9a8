import secrets
from datetime import datetime, timezone, timedelta
import pytest
from fastapi import HTTPException
from jose import jwt
from churchflow.models import (
    ActivityLog,
    Church,
    ChurchRole,
    ChurchUser,
    DonationFund,
    RefreshToken,
    SubscriptionStatus,
    User,
)
from churchflow.settings import settings
from churchflow.utils.auth import create_access_token, hash_token, verify_access_token
from tests.helpers import BaseTestHelpers


class TestRegisterUser:
    url = "/api/auth/register"

    # --- Helper Methods ---
    def _get_payload(
        self,
        name="Pastor Dan",
        email="dan@example.com",
        password="password123",
        church_name="Grace Chapel",
    ):
        return {
            "name": name,
            "email": email,
            "password": password,
            "church_name": church_name,
        }

    # --- Tests ---
    def test_register_user_success(self, client, db_session):
        response = client.post(self.url, json=self._get_payload())

        # Check API response
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Account created successfully"

        # Check database
        user = db_session.query(User).filter(User.id == data["user_id"]).one()
        assert user.email == "dan@example.com"
        assert user.hashed_password != "password123"

        church = db_session.query(Church).filter(Church.id == data["church_id"]).one()
        assert church.slug == "grace-chapel"
        assert church.subscription_status == SubscriptionStatus.trial
        assert church.trial_ends_at is not None

        link = db_session.query(ChurchUser).filter(ChurchUser.user_id == user.id).one()
        assert link.church_id == church.id
        assert link.role == ChurchRole.owner

        fund = db_session.query(DonationFund).filter(DonationFund.church_id == church.id).one()
        assert fund.name == "General Fund"
        assert fund.is_default is True

    def test_register_logs_church_creation(self, client, db_session):
        data = client.post(self.url, json=self._get_payload()).json()

        entry = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.church_id == data["church_id"])
            .one()
        )
        assert entry.action == "CHURCH_CREATED"
        assert entry.user_id == data["user_id"]

    def test_register_duplicate_email(self, client, db_session):
        client.post(self.url, json=self._get_payload())

        response = client.post(self.url, json=self._get_payload(church_name="Other"))
        assert response.status_code == 400
        assert response.json()["detail"] == "An account with this email already exists"

        users = db_session.query(User).filter(User.email == "dan@example.com").all()
        assert len(users) == 1

    def test_register_email_is_normalised(self, client, db_session):
        response = client.post(
            self.url, json=self._get_payload(email="  Dan@Example.COM ")
        )
        assert response.status_code == 201
        user = db_session.query(User).filter(User.id == response.json()["user_id"]).one()
        assert user.email == "dan@example.com"

    def test_register_same_church_name_gets_unique_slug(self, client, db_session):
        first = client.post(self.url, json=self._get_payload()).json()
        second = client.post(
            self.url, json=self._get_payload(email="other@example.com")
        ).json()

        slugs = {
            c.slug
            for c in db_session.query(Church).filter(
                Church.id.in_([first["church_id"], second["church_id"]])
            )
        }
        assert slugs == {"grace-chapel", "grace-chapel-1"}

    def test_register_password_too_short(self, client):
        response = client.post(self.url, json=self._get_payload(password="short"))
        assert response.status_code == 422
        err = response.json()["detail"][0]
        assert "Password must be at least 8 characters" in err["msg"]
        # Sensitive input is masked in validation errors
        assert err["input"] == "***"

    def test_register_blank_church_name(self, client):
        response = client.post(self.url, json=self._get_payload(church_name="   "))
        assert response.status_code == 422
        assert "All fields are required" in response.json()["detail"][0]["msg"]

    def test_register_invalid_email(self, client):
        response = client.post(self.url, json=self._get_payload(email="not-an-email"))
        assert response.status_code == 422
        assert "Invalid email address" in response.json()["detail"][0]["msg"]


class TestLoginUser(BaseTestHelpers):
    login_url = "/api/auth/login"

    def _get_form_data(self, email=None, password=None):
        return {"username": email or self.email, "password": password or self.password}

    # --- Tests ---
    def test_login_success(self, client, db_session):
        user = self._create_user(db_session)

        response = client.post(self.login_url, data=self._get_form_data())
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

        # Refresh token is stored hashed
        token = db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).one()
        assert token.token_hash == hash_token(data["refresh_token"])
        assert token.revoked is False

    def test_login_sets_session_cookie(self, client, db_session):
        self._create_user(db_session)

        response = client.post(self.login_url, data=self._get_form_data())
        assert response.status_code == 200
        assert response.cookies.get(settings.SESSION_COOKIE_NAME) == (
            response.json()["access_token"]
        )

    def test_login_wrong_password(self, client, db_session):
        self._create_user(db_session)

        response = client.post(
            self.login_url, data=self._get_form_data(password="wrongpassword")
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_unknown_user(self, client):
        response = client.post(
            self.login_url, data=self._get_form_data(email="nobody@example.com")
        )
        assert response.status_code == 400


class TestSessionCookieAuth(BaseTestHelpers):
    def test_cookie_authenticates_requests(self, client, db_session):
        user = self._create_user(db_session)
        self._create_church(db_session, user)

        # Login stores the session cookie on the client
        self._get_access_token_from_login(client, self.email, self.password)
        response = client.get("/api/user/profile")

        assert response.status_code == 200
        assert response.json()["email"] == self.email

    def test_bearer_header_takes_precedence(self, client, db_session):
        self._create_user(db_session)
        self._get_access_token_from_login(client, self.email, self.password)

        response = client.get(
            "/api/user/profile", headers={"Authorization": "Bearer invalidtoken"}
        )
        assert response.status_code == 401

    def test_logout_clears_cookie(self, client, db_session):
        self._create_user(db_session)
        login = client.post(
            "/api/auth/login",
            data={"username": self.email, "password": self.password},
        ).json()

        response = client.post(
            "/api/auth/logout", json={"refresh_token": login["refresh_token"]}
        )
        assert response.status_code == 200
        assert client.get("/api/user/profile").status_code == 401


class TestRefreshToken(BaseTestHelpers):
    url = "/api/auth/refresh"

    def _store_refresh_token(self, db_session, user, expires_at=None, revoked=False):
        raw = secrets.token_hex(32)
        db_session.add(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(raw),
                expires_at=expires_at or datetime.now(timezone.utc) + timedelta(days=1),
                revoked=revoked,
            )
        )
        db_session.commit()
        return raw

    def test_refresh_rotates_token(self, client, db_session):
        user = self._create_user(db_session)
        raw = self._store_refresh_token(db_session, user)

        response = client.post(self.url, json={"refresh_token": raw})
        assert response.status_code == 200
        data = response.json()
        assert data["refresh_token"] != raw

        old = (
            db_session.query(RefreshToken)
            .filter(RefreshToken.token_hash == hash_token(raw))
            .one()
        )
        assert old.revoked is True

        # The old token cannot be used twice
        response = client.post(self.url, json={"refresh_token": raw})
        assert response.status_code == 401

    def test_refresh_expired_token(self, client, db_session):
        user = self._create_user(db_session)
        raw = self._store_refresh_token(
            db_session, user, expires_at=datetime.now(timezone.utc) - timedelta(days=1)
        )

        response = client.post(self.url, json={"refresh_token": raw})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid refresh token"

    def test_refresh_revoked_token(self, client, db_session):
        user = self._create_user(db_session)
        raw = self._store_refresh_token(db_session, user, revoked=True)

        response = client.post(self.url, json={"refresh_token": raw})
        assert response.status_code == 401

    def test_logout_revokes_token(self, client, db_session):
        user = self._create_user(db_session)
        raw = self._store_refresh_token(db_session, user)

        response = client.post("/api/auth/logout", json={"refresh_token": raw})
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out"

        token = (
            db_session.query(RefreshToken)
            .filter(RefreshToken.token_hash == hash_token(raw))
            .one()
        )
        assert token.revoked is True


class TestAccessToken:
    def test_round_trip(self):
        payload = verify_access_token(create_access_token(7))
        assert payload["sub"] == "7"

    def test_rejects_token_without_access_type(self):
        token = jwt.encode(
            {"sub": "7"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )
        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token)
        assert exc_info.value.status_code == 401
