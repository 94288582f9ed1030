"""Unit tests for the profile service."""

import pytest

from src.user_service.core.exceptions import ConflictError, NotFoundError
from src.user_service.core.services.user import (
    IdentityResolver,
    UserProfileService,
    UserUpdate,
)
from src.user_service.entities.core.user import UNKNOWN_VALUE


@pytest.fixture
def profile(db_service) -> UserProfileService:
    return UserProfileService(db_service)


@pytest.fixture
def provision(db_service):
    resolver = IdentityResolver(db_service)

    def _provision(**claims):
        return resolver.resolve_or_provision(claims)

    return _provision


class TestMyPage:
    def test_profile_fields(self, profile, provision):
        provision(sub="u-1", name="홍길동", phone_number="010-1234-5678")

        page = profile.get_my_page("u-1")

        assert page == {
            "userInfo": {
                "userId": "u-1",
                "userName": "홍길동",
                "phoneNumber": "+82 10 1234 5678",
                "formattedPhoneNumber": "010-1234-5678",
                "userLocation": UNKNOWN_VALUE,
            }
        }

    def test_unknown_user_gets_placeholders(self, profile):
        info = profile.get_my_page("ghost")["userInfo"]

        assert info["userId"] == "ghost"
        assert info["userName"] == UNKNOWN_VALUE
        assert info["phoneNumber"] == UNKNOWN_VALUE
        assert info["formattedPhoneNumber"] == UNKNOWN_VALUE
        assert info["userLocation"] == UNKNOWN_VALUE


class TestUpdateUserInfo:
    def test_phone_is_normalized_on_update(self, profile, provision):
        provision(sub="u-1")

        updated = profile.update_user_info("u-1", UserUpdate(phoneNumber="010-2222-3333"))

        assert updated.phone_number == "+82 10 2222 3333"
        assert profile.get_my_page("u-1")["userInfo"]["phoneNumber"] == "+82 10 2222 3333"

    def test_partial_update_leaves_other_fields(self, profile, provision):
        provision(sub="u-1", name="홍길동", phone_number="010-1234-5678")

        updated = profile.update_user_info("u-1", UserUpdate(userLocation="부산 해운대구"))

        assert updated.user_name == "홍길동"
        assert updated.phone_number == "+82 10 1234 5678"
        assert updated.user_location == "부산 해운대구"

    def test_snake_case_fields_are_accepted(self, profile, provision):
        provision(sub="u-1")

        updated = profile.update_user_info("u-1", UserUpdate(user_name="새 이름"))

        assert updated.user_name == "새 이름"

    def test_duplicate_phone_in_another_spelling_conflicts(self, profile, provision):
        provision(sub="owner", phone_number="010-1234-5678")
        provision(sub="other")

        with pytest.raises(ConflictError):
            profile.update_user_info("other", UserUpdate(phoneNumber="+82 10-1234-5678"))

        assert profile.get_my_page("other")["userInfo"]["phoneNumber"] == UNKNOWN_VALUE

    def test_resubmitting_own_phone_is_not_a_conflict(self, profile, provision):
        provision(sub="owner", phone_number="010-1234-5678")

        updated = profile.update_user_info("owner", UserUpdate(phoneNumber="01012345678"))

        assert updated.phone_number == "+82 10 1234 5678"

    def test_unknown_user(self, profile):
        with pytest.raises(NotFoundError):
            profile.update_user_info("ghost", UserUpdate(userName="x"))

    def test_empty_update_is_a_no_op(self, profile, provision):
        created = provision(sub="u-1", name="홍길동")

        assert profile.update_user_info("u-1", UserUpdate()) == created


class TestLookups:
    def test_count_users(self, profile, provision):
        assert profile.count_users() == 0

        provision(sub="a")
        provision(sub="b")

        assert profile.count_users() == 2

    def test_get_user_name(self, profile, provision):
        provision(sub="a", name="홍길동")

        assert profile.get_user_name("a") == "홍길동"

    def test_get_user_name_unknown(self, profile):
        with pytest.raises(NotFoundError):
            profile.get_user_name("ghost")
