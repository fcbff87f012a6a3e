"""Tests for the user service."""
import pytest

from app.core.auth import verify_password
from app.core.errors import HttpError
from app.domain.user import Credentials
from app.services import users


class TestRegister:
    def test_register_hashes_password(self, session):
        user = users.register(session, Credentials(username="jsmith", password="secure123"))

        assert user.id
        assert user.username == "jsmith"
        assert user.password != "secure123"
        assert verify_password("secure123", user.password)

    def test_register_applies_default_preferences(self, seller):
        assert seller.palette == "deepPurple"
        assert seller.theme == "light"

    def test_register_duplicate_username(self, session, seller):
        with pytest.raises(HttpError) as exc_info:
            users.register(session, Credentials(username="seller01", password="another1"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Username already exists"

    def test_find_user(self, session, seller):
        assert users.find_user_by_username(session, "seller01").id == seller.id
        assert users.find_user_by_id(session, seller.id).username == "seller01"
        assert users.find_user_by_username(session, "nobody1") is None
        assert users.find_user_by_id(session, "missing") is None


class TestLogin:
    def test_login_returns_stored_user(self, session, seller):
        user = users.login(session, "seller01", "secret123")

        assert user.id == seller.id

    def test_login_with_wrong_password(self, session, seller):
        with pytest.raises(HttpError) as exc_info:
            users.login(session, "seller01", "wrong-password")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Wrong username or password"

    def test_login_with_unknown_user(self, session):
        with pytest.raises(HttpError) as exc_info:
            users.login(session, "ghost01", "secret123")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Wrong username or password"


class TestPreferences:
    def test_change_theme(self, session, seller):
        users.change_theme(session, seller.id, "dark")

        assert users.find_user_by_id(session, seller.id).theme == "dark"

    def test_change_palette(self, session, seller):
        users.change_palette(session, seller.id, "amber")

        assert users.find_user_by_id(session, seller.id).palette == "amber"

    def test_invalid_values(self, session, seller):
        with pytest.raises(HttpError) as exc_info:
            users.change_theme(session, seller.id, "sepia")
        assert exc_info.value.message == "Invalid theme"

        with pytest.raises(HttpError) as exc_info:
            users.change_palette(session, seller.id, "beige")
        assert exc_info.value.message == "Invalid palette"

    def test_unknown_user(self, session):
        with pytest.raises(HttpError) as exc_info:
            users.change_theme(session, "missing", "dark")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "User does not exist"
