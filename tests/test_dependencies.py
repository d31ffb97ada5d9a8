import pytest
from fastapi import HTTPException
from churchflow.dependencies import get_church_user, require_church_role
from churchflow.models import ChurchRole
from tests.helpers import BaseTestHelpers


class TestChurchAccessLogic(BaseTestHelpers):
    def test_church_user_resolved_for_owner(self, db_session):
        user = self._create_user(db_session)
        church = self._create_church(db_session, user)

        church_user = get_church_user(user=user, db=db_session)
        assert church_user.church_id == church.id
        assert church_user.role == ChurchRole.owner

    def test_user_without_church(self, db_session):
        user = self._create_user(db_session)

        with pytest.raises(HTTPException) as exc_info:
            get_church_user(user=user, db=db_session)
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize(
        "role,min_role,allowed",
        [
            (ChurchRole.viewer, ChurchRole.viewer, True),
            (ChurchRole.volunteer, ChurchRole.staff, False),
            (ChurchRole.staff, ChurchRole.staff, True),
            (ChurchRole.pastor, ChurchRole.admin, False),
            (ChurchRole.owner, ChurchRole.admin, True),
        ],
    )
    def test_role_hierarchy(self, db_session, role, min_role, allowed):
        owner = self._create_user(db_session, email="owner@example.com")
        church = self._create_church(db_session, owner)
        user = self._create_user(db_session)
        church_user = self._add_church_user(db_session, user, church, role=role)

        dependency = require_church_role(min_role)
        if allowed:
            assert dependency(church_user=church_user) is church_user
        else:
            with pytest.raises(HTTPException) as exc_info:
                dependency(church_user=church_user)
            assert exc_info.value.status_code == 403
