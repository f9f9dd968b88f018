"""Tests for the email notification post-action."""

import pytest

from fakes import FakeMailSender
from sendgrid_pipeline.actions.email_action import send_notification
from sendgrid_pipeline.core.config_models import EmailActionConfig
from sendgrid_pipeline.core.errors import SendGridConnectionError


def make_config(**overrides):
    data = {
        "from": "pipelines@example.com",
        "to": "team@example.com",
        "subject": "Run finished",
        "apiKey": "SG.mail-key",
        "content": "All done",
    }
    data.update(overrides)
    return EmailActionConfig(**data)


class TestSendNotification:
    def test_sends_on_completion(self):
        sender = FakeMailSender()

        sent = send_notification(make_config(), pipeline_succeeded=False, sender_factory=sender)

        assert sent is True
        assert sender.api_keys == ["SG.mail-key"]
        assert sender.sent == [
            {
                "from": "pipelines@example.com",
                "to": "team@example.com",
                "subject": "Run finished",
                "content": "All done",
            }
        ]

    @pytest.mark.parametrize("condition, succeeded", [("success", False), ("failure", True)])
    def test_skipped_when_condition_does_not_match(self, condition, succeeded):
        sender = FakeMailSender()

        sent = send_notification(
            make_config(runCondition=condition), pipeline_succeeded=succeeded, sender_factory=sender
        )

        assert sent is False
        assert sender.api_keys == []
        assert sender.sent == []

    def test_empty_content(self):
        sender = FakeMailSender()
        send_notification(make_config(content=None), pipeline_succeeded=True, sender_factory=sender)
        assert sender.sent[0]["content"] == ""

    def test_sender_closed_after_sending(self):
        sender = FakeMailSender()
        send_notification(make_config(), pipeline_succeeded=True, sender_factory=sender)
        assert sender.closed is True

    def test_sender_closed_when_send_fails(self):
        sender = FakeMailSender(error=SendGridConnectionError("POST failed: 401", status_code=401))

        with pytest.raises(SendGridConnectionError):
            send_notification(make_config(), pipeline_succeeded=True, sender_factory=sender)

        assert sender.closed is True
