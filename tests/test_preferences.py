"""Tests for preference resolution and the owner-scoped settings service."""

import pytest

from qalam.domain.models import NotificationPreferenceSettings
from qalam.notifications.preferences import (
    NotificationSettingsService,
    PreferenceResolver,
    SettingsAccessError,
    is_event_enabled,
)
from qalam.persistence import PreferenceRepository, close_database, get_session, init_database


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


class TestIsEventEnabled:
    """Tests for per-type gating."""

    def test_defaults_per_type(self):
        settings = NotificationPreferenceSettings.defaults("p1")
        assert is_event_enabled(settings, "publish") is True
        assert is_event_enabled(settings, "comment") is True
        assert is_event_enabled(settings, "follow") is True
        assert is_event_enabled(settings, "like") is False

    def test_explicit_flags(self):
        settings = NotificationPreferenceSettings(
            profile_id="p1", pref_email=True, on_comment=False, on_like=True
        )
        assert is_event_enabled(settings, "comment") is False
        assert is_event_enabled(settings, "like") is True

    def test_null_flag_falls_back_to_default(self):
        settings = NotificationPreferenceSettings(
            profile_id="p1", on_publish=None, on_like=None
        )
        assert is_event_enabled(settings, "publish") is True
        assert is_event_enabled(settings, "like") is False

    def test_unknown_type_is_enabled(self):
        settings = NotificationPreferenceSettings.defaults("p1")
        assert is_event_enabled(settings, "mention") is True


class TestPreferenceResolver:
    """Tests for the read-only resolver."""

    def test_missing_row_returns_defaults_without_writing(self, database):
        with get_session() as session:
            settings = PreferenceResolver(session).get_settings("new-reader")

        assert settings.pref_email is False
        assert settings.on_like is False

        with get_session() as session:
            assert PreferenceRepository(session).get("new-reader") is None

    def test_stored_row_returned(self, database):
        with get_session() as session:
            PreferenceRepository(session).upsert(
                NotificationPreferenceSettings(profile_id="author-1", pref_email=True)
            )

        with get_session() as session:
            assert PreferenceResolver(session).get_settings("author-1").pref_email is True


class TestNotificationSettingsService:
    """Tests for settings page operations."""

    def test_first_visit_seeds_default_row(self, database):
        with get_session() as session:
            settings = NotificationSettingsService(session).get_for_owner("author-1", "author-1")

        assert settings == NotificationPreferenceSettings.defaults("author-1")

        with get_session() as session:
            assert PreferenceRepository(session).get("author-1") is not None

    def test_update_changes_only_given_flags(self, database):
        with get_session() as session:
            service = NotificationSettingsService(session)
            service.update_for_owner("author-1", "author-1", pref_email=True, on_like=1)

        with get_session() as session:
            settings = PreferenceRepository(session).get("author-1")

        assert settings.pref_email is True
        assert settings.on_like is True
        assert settings.on_comment is True

    def test_other_profile_rejected(self, database):
        with get_session() as session:
            service = NotificationSettingsService(session)
            with pytest.raises(SettingsAccessError):
                service.get_for_owner("author-1", requested_by="intruder")
            with pytest.raises(SettingsAccessError):
                service.update_for_owner("author-1", "intruder", pref_email=True)

        with get_session() as session:
            assert PreferenceRepository(session).get("author-1") is None

    @pytest.mark.parametrize("requested_by", [None, ""])
    def test_missing_requester_rejected(self, database, requested_by):
        with get_session() as session:
            service = NotificationSettingsService(session)
            with pytest.raises(SettingsAccessError):
                service.get_for_owner("author-1", requested_by)
            with pytest.raises(SettingsAccessError):
                service.update_for_owner("author-1", requested_by, pref_email=True)

        with get_session() as session:
            assert PreferenceRepository(session).get("author-1") is None

    def test_unknown_flag_rejected(self, database):
        with get_session() as session:
            with pytest.raises(ValueError, match="on_mention"):
                NotificationSettingsService(session).update_for_owner(
                    "author-1", "author-1", on_mention=True
                )

    def test_access_error_is_permission_error(self):
        assert issubclass(SettingsAccessError, PermissionError)
