"""
Unit tests for UserService.

Tests cover:
- First-time provisioning from a resolved credential
- Refresh of verified contact details
- Profile updates and profile_completed
"""

import pytest

from backend.src.auth.principal_resolver import ResolvedPrincipal
from backend.src.models import User
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.user_service import UserService


class TestGetOrCreate:
    def test_provisions_from_metadata(self, test_db_session):
        principal = ResolvedPrincipal(
            subject="idp|42",
            email="sam@example.com",
            claims={"user_metadata": {
                "first_name": "Sam", "last_name": "Rivera", "name": "Sammy",
            }},
        )
        user = UserService(test_db_session).get_or_create_by_subject(principal)

        assert user.guid.startswith("usr_")
        assert user.external_subject == "idp|42"
        assert user.email == "sam@example.com"
        assert user.display_name == "Sammy"
        assert user.first_name == "Sam"
        # hometown and instrument are never provided by the identity provider
        assert user.profile_completed is False

    def test_minimal_principal_has_incomplete_profile(self, test_db_session):
        user = UserService(test_db_session).get_or_create_by_subject(
            ResolvedPrincipal(subject="idp|43")
        )
        assert user.profile_completed is False

    def test_second_resolution_reuses_row(self, test_db_session):
        service = UserService(test_db_session)
        first = service.get_or_create_by_subject(ResolvedPrincipal(subject="idp|44"))
        second = service.get_or_create_by_subject(ResolvedPrincipal(subject="idp|44"))
        assert first.id == second.id
        assert test_db_session.query(User).count() == 1

    def test_refreshes_verified_contact(self, test_db_session, make_user):
        user = make_user(subject="idp|45", email="old@example.com")
        refreshed = UserService(test_db_session).get_or_create_by_subject(
            ResolvedPrincipal(subject="idp|45", email="new@example.com", phone="+4412345")
        )
        assert refreshed.id == user.id
        assert refreshed.email == "new@example.com"
        assert refreshed.phone == "+4412345"

    def test_claimed_contact_not_stolen(self, test_db_session, make_user):
        make_user(subject="idp|a", email="taken@example.com")
        user = make_user(subject="idp|b", email="mine@example.com")
        refreshed = UserService(test_db_session).get_or_create_by_subject(
            ResolvedPrincipal(subject="idp|b", email="taken@example.com")
        )
        assert refreshed.id == user.id
        assert refreshed.email == "mine@example.com"


class TestLookup:
    def test_get_by_guid(self, test_db_session, make_user):
        user = make_user()
        service = UserService(test_db_session)
        assert service.get_by_guid(user.guid).id == user.id
        with pytest.raises(NotFoundError):
            service.get_by_guid("grp_00000000000000000000000000")
        with pytest.raises(NotFoundError):
            service.get_by_guid("usr_00000000000000000000000000")

    def test_get_by_id_missing(self, test_db_session):
        with pytest.raises(NotFoundError):
            UserService(test_db_session).get_by_id(12345)


class TestUpdateProfile:
    def test_completes_profile(self, test_db_session, make_user):
        user = make_user(first_name=None, last_name=None)
        assert user.profile_completed is False

        updated = UserService(test_db_session).update_profile(user.id, {
            "first_name": " Sam ", "last_name": "Rivera", "instrument": "Drums",
            "hometown": "Leeds",
        })
        assert updated.first_name == "Sam"
        assert updated.instrument == "Drums"
        assert updated.profile_completed is True

    def test_blank_name_rejected(self, test_db_session, make_user):
        user = make_user()
        with pytest.raises(ValidationError) as exc_info:
            UserService(test_db_session).update_profile(user.id, {"display_name": "  "})
        assert exc_info.value.field == "display_name"

    def test_blank_optional_field_cleared(self, test_db_session, make_user):
        user = make_user(hometown="Leeds")
        updated = UserService(test_db_session).update_profile(user.id, {"hometown": " "})
        assert updated.hometown is None

    def test_unknown_field_rejected(self, test_db_session, make_user):
        user = make_user()
        with pytest.raises(ValidationError) as exc_info:
            UserService(test_db_session).update_profile(user.id, {"is_platform_admin": True})
        assert exc_info.value.field == "is_platform_admin"
