"""Tests for the SendGrid mail sink and its configuration."""

import pandas as pd
import pytest

from fakes import FakeClientFactory, FakeMailSender
from sendgrid_pipeline.core.config_models import SendGridSinkConfig, ToAddressSource
from sendgrid_pipeline.core.errors import ConfigValidationError, FailureKind, SendGridConnectionError
from sendgrid_pipeline.core.validator import validate_sink
from sendgrid_pipeline.io.mail_sink import MailSink


def sink_properties(**overrides):
    properties = {
        "referenceName": "Notices",
        "authType": "api",
        "sendGridApiKey": "SG.test-key",
        "mailSubject": "subject",
        "from": "test@email.com",
        "recipientAddressSource": "input",
        "recipientAddresses": "test1@email.com,test2@email.com",
        "recipientColumnName": "column1",
        "bodyColumnName": "column2",
        "replyTo": "reply@email.com",
        "footerEnable": True,
        "footerHTML": "footer",
        "sandboxMode": True,
        "clickTracking": True,
        "openTracking": True,
        "subscriptionTracking": True,
    }
    properties.update(overrides)
    return properties


@pytest.fixture
def sink_config():
    return SendGridSinkConfig(**sink_properties())


class TestSendGridSinkConfig:
    def test_mail_subject(self, sink_config):
        assert sink_config.mail_subject == "subject"

    def test_from(self, sink_config):
        assert sink_config.from_address == "test@email.com"

    def test_recipient_address_source(self, sink_config):
        assert sink_config.recipient_address_source == ToAddressSource.INPUT

    def test_recipient_addresses(self, sink_config):
        assert sink_config.get_recipient_addresses() == ["test1@email.com", "test2@email.com"]

    def test_recipient_column_name(self, sink_config):
        assert sink_config.recipient_column_name == "column1"

    def test_body_column_name(self, sink_config):
        assert sink_config.body_column_name == "column2"

    def test_reply_to(self, sink_config):
        assert sink_config.reply_to == "reply@email.com"

    def test_footer(self, sink_config):
        assert sink_config.footer_enable is True
        assert sink_config.footer_html == "footer"

    def test_sandbox_mode(self, sink_config):
        assert sink_config.sandbox_mode is True

    def test_tracking(self, sink_config):
        assert sink_config.click_tracking is True
        assert sink_config.open_tracking is True
        assert sink_config.subscription_tracking is True

    def test_address_source_case_insensitive(self):
        config = SendGridSinkConfig(**sink_properties(recipientAddressSource="CONFIG"))
        assert config.recipient_address_source == ToAddressSource.CONFIG

    def test_yaml_address_list_joined(self):
        config = SendGridSinkConfig(**sink_properties(recipientAddresses=["a@x.com", "b@x.com"]))
        assert config.recipient_addresses == "a@x.com,b@x.com"

    def test_mail_and_tracking_settings(self, sink_config):
        assert sink_config.mail_settings() == {
            "footer": {"enable": True, "html": "footer"},
            "sandbox_mode": {"enable": True},
        }
        assert sink_config.tracking_settings() == {
            "click_tracking": {"enable": True},
            "open_tracking": {"enable": True},
            "subscription_tracking": {"enable": True},
        }

    def test_to_properties_uses_property_names(self, sink_config):
        properties = sink_config.to_properties()
        assert properties["recipientAddressSource"] == "input"
        assert properties["footerHTML"] == "footer"
        assert properties["sendGridApiKey"] == "***"


class TestSinkValidation:
    def test_valid_config(self, sink_config, client_factory):
        assert validate_sink(sink_config, client_factory=client_factory) == []
        assert client_factory.probes[0].calls == 1
        assert client_factory.probes[0].closed is True

    def test_missing_sender_subject_and_body(self):
        config = SendGridSinkConfig(
            **sink_properties(**{"from": None, "mailSubject": "", "bodyColumnName": None})
        )

        failures = validate_sink(config, check_connection=False)

        assert [f.property_key for f in failures] == ["from", "mailSubject", "bodyColumnName"]
        assert all(f.kind == FailureKind.MISSING_REQUIRED_FIELD for f in failures)

    def test_input_source_requires_column(self):
        config = SendGridSinkConfig(**sink_properties(recipientColumnName=None))
        failures = validate_sink(config, check_connection=False)
        assert [f.property_key for f in failures] == ["recipientColumnName"]

    def test_config_source_requires_addresses(self):
        config = SendGridSinkConfig(
            **sink_properties(recipientAddressSource="config", recipientAddresses=" , ")
        )
        failures = validate_sink(config, check_connection=False)
        assert [f.property_key for f in failures] == ["recipientAddresses"]

    def test_enabled_footer_requires_html(self):
        config = SendGridSinkConfig(**sink_properties(footerHTML=None))
        failures = validate_sink(config, check_connection=False)
        assert [f.property_key for f in failures] == ["footerHTML"]

    def test_auth_and_connectivity_shared_with_sources(self, failing_client_factory):
        config = SendGridSinkConfig(**sink_properties())

        failures = validate_sink(config, client_factory=failing_client_factory)

        assert failures[0].kind == FailureKind.CONNECTIVITY_FAILURE
        assert failures[0].property_keys == ("sendGridApiKey",)

    def test_missing_api_key_builds_no_client(self):
        factory = FakeClientFactory()
        config = SendGridSinkConfig(**sink_properties(sendGridApiKey=""))

        failures = validate_sink(config, client_factory=factory)

        assert [f.property_key for f in failures] == ["sendGridApiKey"]
        assert factory.auths == []


class TestMailSink:
    def test_one_email_per_row_from_input_columns(self, sink_config):
        sender = FakeMailSender()
        df = pd.DataFrame(
            {
                "column1": ["a@example.com", "b@example.com, c@example.com"],
                "column2": ["Hello A", "Hello B and C"],
            }
        )

        result = MailSink(sink_config, sender).write(df)

        assert result.sent == 2
        assert result.skipped == 0
        assert [mail["to"] for mail in sender.sent] == [
            ["a@example.com"],
            ["b@example.com", "c@example.com"],
        ]
        first = sender.sent[0]
        assert first["from"] == "test@email.com"
        assert first["subject"] == "subject"
        assert first["content"] == "Hello A"
        assert first["reply_to"] == "reply@email.com"
        assert first["mail_settings"]["sandbox_mode"] == {"enable": True}
        assert first["tracking_settings"]["click_tracking"] == {"enable": True}

    def test_configured_recipients(self):
        config = SendGridSinkConfig(
            **sink_properties(recipientAddressSource="config", recipientColumnName=None)
        )
        sender = FakeMailSender()
        df = pd.DataFrame({"column2": ["Body"]})

        MailSink(config, sender).write(df)

        assert sender.sent[0]["to"] == ["test1@email.com", "test2@email.com"]

    def test_rows_without_recipients_skipped(self, sink_config):
        sender = FakeMailSender()
        df = pd.DataFrame({"column1": [None, "a@example.com", ""], "column2": ["x", None, "z"]})

        result = MailSink(sink_config, sender).write(df)

        assert result.sent == 1
        assert result.skipped_rows == [0, 2]
        assert sender.sent[0]["content"] == ""
        assert result.to_dict()["skipped"] == 2

    def test_missing_columns_rejected(self, sink_config):
        sender = FakeMailSender()
        df = pd.DataFrame({"email": ["a@example.com"]})

        with pytest.raises(ConfigValidationError) as exc_info:
            MailSink(sink_config, sender).write(df)

        keys = [f.property_key for f in exc_info.value.failures]
        assert keys == ["bodyColumnName", "recipientColumnName"]
        assert sender.sent == []

    def test_send_failure_stops_write(self, sink_config):
        sender = FakeMailSender(error=SendGridConnectionError("POST failed: 400", status_code=400))
        df = pd.DataFrame({"column1": ["a@example.com"], "column2": ["x"]})

        with pytest.raises(SendGridConnectionError):
            MailSink(sink_config, sender).write(df)

    def test_close_closes_sender(self, sink_config):
        sender = FakeMailSender()
        MailSink(sink_config, sender).close()
        assert sender.closed is True
