"""Tests for the scheduled and administrative triggers."""

from unittest.mock import Mock

import pytest

from qalam.identity import IdentityHTTPError, IdentityUser
from qalam.processing import NO_PENDING_EVENTS, BatchResult, EventFetchError, FailedEvent
from qalam.triggers import AdminTrigger, ScheduledTrigger, TriggerResponse, extract_bearer_token


@pytest.fixture
def processor():
    mock_processor = Mock()
    mock_processor.process_pending.return_value = BatchResult(
        processed=2, failed=[FailedEvent(id=7, reason="no_email_on_file")], skipped=1, total=4
    )
    return mock_processor


@pytest.fixture
def identity_provider():
    provider = Mock()
    provider.verify_token.return_value = IdentityUser(id="admin-1", email="admin@qalam.blog")
    return provider


class TestExtractBearerToken:
    def test_extracts_token(self):
        assert extract_bearer_token("Bearer abc") == "abc"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "bearer abc"])
    def test_missing_or_malformed(self, header):
        assert extract_bearer_token(header) is None


class TestTriggerResponse:
    def test_error_shape(self):
        response = TriggerResponse.error(401, "unauthorized")
        assert response.status == 401
        assert response.body == {"error": "unauthorized"}
        assert not response.ok


class TestScheduledTrigger:
    """Shared-secret trigger."""

    def test_secret_not_configured(self, processor):
        response = ScheduledTrigger(processor, cron_secret=None).invoke("Bearer anything")

        assert response.status == 500
        assert response.body == {"error": "cron_secret_not_set"}
        processor.process_pending.assert_not_called()

    def test_wrong_secret(self, processor):
        response = ScheduledTrigger(processor, "s3cret").invoke("Bearer wrong", query_secret="nope")

        assert response.status == 401
        assert response.body == {"error": "unauthorized"}
        processor.process_pending.assert_not_called()

    def test_no_credentials(self, processor):
        assert ScheduledTrigger(processor, "s3cret").invoke().status == 401

    def test_header_secret_runs_processor(self, processor):
        response = ScheduledTrigger(processor, "s3cret").invoke("Bearer s3cret")

        assert response.status == 200
        assert response.body == {
            "processed": 2,
            "failed": [{"id": 7, "reason": "no_email_on_file"}],
            "skipped": 1,
            "total": 4,
        }

    def test_query_secret_runs_processor(self, processor):
        response = ScheduledTrigger(processor, "s3cret").invoke(query_secret="s3cret")
        assert response.ok
        processor.process_pending.assert_called_once()

    def test_empty_batch_full_shape(self, processor):
        processor.process_pending.return_value = BatchResult(message=NO_PENDING_EVENTS)

        response = ScheduledTrigger(processor, "s3cret").invoke("Bearer s3cret")

        assert response.body == {
            "processed": 0,
            "failed": [],
            "skipped": 0,
            "total": 0,
            "message": "no_pending_events",
        }

    def test_fetch_failure(self, processor):
        processor.process_pending.side_effect = EventFetchError()

        response = ScheduledTrigger(processor, "s3cret").invoke("Bearer s3cret")

        assert response.status == 500
        assert response.body == {"error": "failed_to_fetch_events"}

    def test_unexpected_error(self, processor):
        processor.process_pending.side_effect = RuntimeError("boom")

        response = ScheduledTrigger(processor, "s3cret").invoke("Bearer s3cret")

        assert response.status == 500
        assert response.body == {"error": "unhandled_error"}


class TestAdminTrigger:
    """Token-authenticated manual trigger."""

    def test_missing_token(self, processor, identity_provider):
        response = AdminTrigger(processor, identity_provider).invoke(None)

        assert response.status == 401
        assert response.body == {"error": "unauthorized"}
        identity_provider.verify_token.assert_not_called()

    def test_rejected_token(self, processor, identity_provider):
        identity_provider.verify_token.return_value = None

        response = AdminTrigger(processor, identity_provider).invoke("Bearer expired")

        assert response.status == 401
        processor.process_pending.assert_not_called()

    def test_identity_error(self, processor, identity_provider):
        identity_provider.verify_token.side_effect = IdentityHTTPError(
            "HTTP 503", status_code=503, url="https://identity.test/auth/v1/user"
        )

        response = AdminTrigger(processor, identity_provider).invoke("Bearer token")

        assert response.status == 401
        assert response.body == {"error": "auth_error"}
        processor.process_pending.assert_not_called()

    def test_valid_token_runs_processor(self, processor, identity_provider):
        response = AdminTrigger(processor, identity_provider).invoke("Bearer token")

        identity_provider.verify_token.assert_called_once_with("token")
        assert response.status == 200
        assert response.body["processed"] == 2

    def test_empty_batch_compact_shape(self, processor, identity_provider):
        processor.process_pending.return_value = BatchResult(message=NO_PENDING_EVENTS)

        response = AdminTrigger(processor, identity_provider).invoke("Bearer token")

        assert response.body == {"processed": 0, "message": "no_pending_events"}

    def test_fetch_failure(self, processor, identity_provider):
        processor.process_pending.side_effect = EventFetchError()

        response = AdminTrigger(processor, identity_provider).invoke("Bearer token")

        assert response.status == 500
        assert response.body == {"error": "failed_to_fetch_events"}
