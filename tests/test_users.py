from churchflow.models import ChurchRole, RefreshToken, User
from churchflow.utils.auth import verify_password
from tests.helpers import BaseTestHelpers


class TestUserProfile(BaseTestHelpers):
    url = "/api/user/profile"

    def test_unauthorized_access_no_token(self, client):
        response = client.get(self.url)
        assert response.status_code == 401

    def test_get_profile_with_church(self, client, db_session):
        user, church, headers = self._setup_church_user(client, db_session)

        response = client.get(self.url, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == user.id
        assert data["email"] == self.email
        assert data["church"]["church_id"] == church.id
        assert data["church"]["church_slug"] == church.slug
        assert data["church"]["role"] == ChurchRole.owner

    def test_get_profile_without_church(self, client, db_session):
        self._create_user(db_session)
        token = self._get_access_token_from_login(client, self.email, self.password)

        response = client.get(self.url, headers=self._auth_headers(token))
        assert response.status_code == 200
        assert response.json()["church"] is None

    def test_update_profile(self, client, db_session):
        user, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(
            self.url,
            json={"name": "New Name", "email": "New@Example.com"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "New Name"

        db_session.refresh(user)
        assert user.email == "new@example.com"

    def test_update_profile_email_in_use(self, client, db_session):
        self._create_user(db_session, email="taken@example.com")
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(
            self.url, json={"email": "taken@example.com"}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already in use"

    def test_update_profile_blank_name(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(self.url, json={"name": "  "}, headers=headers)
        assert response.status_code == 422


class TestChangePassword(BaseTestHelpers):
    url = "/api/user/password"

    def _get_payload(self, current=None, new="newpassword1", confirm=None):
        return {
            "current_password": current or self.password,
            "new_password": new,
            "confirm_new_password": confirm or new,
        }

    def test_change_password_success(self, client, db_session):
        user, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(self.url, json=self._get_payload(), headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Password updated successfully"

        db_session.refresh(user)
        assert verify_password("newpassword1", user.hashed_password)

        # Existing refresh tokens are revoked
        tokens = db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id)
        assert all(t.revoked for t in tokens)

    def test_change_password_wrong_current(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(
            self.url, json=self._get_payload(current="wrongpassword"), headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"

    def test_change_password_mismatch(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(
            self.url, json=self._get_payload(confirm="differentpass"), headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "New passwords do not match"

    def test_change_password_same_as_current(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(
            self.url, json=self._get_payload(new=self.password), headers=headers
        )
        assert response.status_code == 400

    def test_change_password_masks_inputs(self, client, db_session):
        _, _, headers = self._setup_church_user(client, db_session)

        response = client.patch(
            self.url, json=self._get_payload(new="short"), headers=headers
        )
        assert response.status_code == 422
        errors = response.json()["detail"]
        assert {e["loc"][-1] for e in errors} == {"new_password", "confirm_new_password"}
        assert all(e["input"] == "***" for e in errors)

        user = db_session.query(User).filter(User.email == self.email).one()
        assert verify_password(self.password, user.hashed_password)
