"""Tests for the HTTP identity provider client."""

from unittest.mock import Mock

import pytest
import requests

from qalam.identity import (
    HTTPIdentityProvider,
    IdentityHTTPError,
    IdentityProviderError,
    IdentityResponseError,
    IdentityTimeoutError,
    IdentityUser,
)

BASE_URL = "https://identity.test.com"


def make_response(status_code=200, json_data=None, json_error=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    mock_session = Mock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def provider(session):
    return HTTPIdentityProvider(BASE_URL + "/", "service-key", timeout=7, session=session)


class TestIdentityUser:
    """Tests for IdentityUser.from_payload()."""

    def test_reads_email_and_full_name(self):
        user = IdentityUser.from_payload(
            {"id": "u1", "email": " a@example.com ", "user_metadata": {"full_name": "سارة"}}
        )
        assert user == IdentityUser(id="u1", email="a@example.com", full_name="سارة")

    def test_blank_values_become_none(self):
        user = IdentityUser.from_payload({"id": "u1", "email": "", "user_metadata": None})
        assert user.email is None
        assert user.full_name is None

    def test_missing_id_rejected(self):
        with pytest.raises(ValueError):
            IdentityUser.from_payload({"email": "a@example.com"})


class TestClientConstruction:
    def test_session_headers(self, provider, session):
        assert provider.base_url == BASE_URL
        assert session.headers["apikey"] == "service-key"
        assert session.headers["User-Agent"] == "QalamNotifications/1.0"

    def test_invalid_arguments(self, session):
        with pytest.raises(ValueError):
            HTTPIdentityProvider("", "key", session=session)
        with pytest.raises(ValueError):
            HTTPIdentityProvider(BASE_URL, "", session=session)
        with pytest.raises(ValueError):
            HTTPIdentityProvider(BASE_URL, "key", timeout=0, session=session)


class TestGetUser:
    """Tests for the admin user lookup."""

    def test_success(self, provider, session):
        session.get.return_value = make_response(
            json_data={"id": "author-1", "email": "author@example.com"}
        )

        user = provider.get_user("author-1")

        assert user.email == "author@example.com"
        session.get.assert_called_once_with(
            f"{BASE_URL}/auth/v1/admin/users/author-1",
            headers={"Authorization": "Bearer service-key"},
            timeout=7,
        )

    def test_wrapped_user_object(self, provider, session):
        session.get.return_value = make_response(
            json_data={"user": {"id": "author-1", "email": "author@example.com"}}
        )
        assert provider.get_user("author-1").id == "author-1"

    def test_not_found_returns_none(self, provider, session):
        session.get.return_value = make_response(status_code=404, reason="Not Found")
        assert provider.get_user("ghost") is None

    def test_empty_id_skips_request(self, provider, session):
        assert provider.get_user("") is None
        session.get.assert_not_called()

    def test_server_error_raises(self, provider, session):
        session.get.return_value = make_response(status_code=500, reason="Server Error")
        with pytest.raises(IdentityHTTPError) as exc_info:
            provider.get_user("author-1")
        assert exc_info.value.status_code == 500

    def test_unauthorized_service_key_raises(self, provider, session):
        session.get.return_value = make_response(status_code=401, reason="Unauthorized")
        with pytest.raises(IdentityHTTPError):
            provider.get_user("author-1")

    def test_timeout(self, provider, session):
        session.get.side_effect = requests.exceptions.Timeout("slow")
        with pytest.raises(IdentityTimeoutError):
            provider.get_user("author-1")

    def test_connection_error(self, provider, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(IdentityProviderError):
            provider.get_user("author-1")

    def test_invalid_json(self, provider, session):
        session.get.return_value = make_response(json_error=ValueError("bad json"))
        with pytest.raises(IdentityResponseError):
            provider.get_user("author-1")

    def test_payload_without_id(self, provider, session):
        session.get.return_value = make_response(json_data={"email": "a@example.com"})
        with pytest.raises(IdentityResponseError):
            provider.get_user("author-1")

    def test_non_object_payload(self, provider, session):
        session.get.return_value = make_response(json_data=["not", "a", "user"])
        with pytest.raises(IdentityResponseError):
            provider.get_user("author-1")


class TestVerifyToken:
    """Tests for caller token verification."""

    def test_valid_token(self, provider, session):
        session.get.return_value = make_response(json_data={"id": "admin-1"})

        user = provider.verify_token("user-token")

        assert user.id == "admin-1"
        session.get.assert_called_once_with(
            f"{BASE_URL}/auth/v1/user",
            headers={"Authorization": "Bearer user-token"},
            timeout=7,
        )

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_rejected_token_returns_none(self, provider, session, status_code):
        session.get.return_value = make_response(status_code=status_code)
        assert provider.verify_token("expired") is None

    def test_empty_token(self, provider, session):
        assert provider.verify_token("") is None
        session.get.assert_not_called()

    def test_provider_failure_raises(self, provider, session):
        session.get.return_value = make_response(status_code=503, reason="Unavailable")
        with pytest.raises(IdentityHTTPError):
            provider.verify_token("user-token")
