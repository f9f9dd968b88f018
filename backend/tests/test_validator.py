"""Tests for the source configuration validator."""

from unittest.mock import patch

import pytest

from sendgrid_pipeline.client.sendgrid_client import SendGridClient
from sendgrid_pipeline.core.config_models import ApiKeyAuth, BasicAuth, ClientSettings, SourceConfig
from sendgrid_pipeline.core.errors import ConfigValidationError, FailureKind
from sendgrid_pipeline.core.schema_builder import DISCRIMINATOR_FIELD
from sendgrid_pipeline.core.validator import (
    ConfigValidator,
    FailureCollector,
    make_client_factory,
    prepare,
    validate,
)


def stats_properties(**overrides):
    properties = {
        "authType": "api",
        "sendGridApiKey": "SG.test-key",
        "dataSourceTypes": "Statistic",
        "dataSourceStats": "GlobalStats",
        "dataSourceFields": "date,opens",
        "start_date": "2024-01-01",
    }
    properties.update(overrides)
    return properties


def keys_of(failures):
    return [f.property_key for f in failures]


class TestScenarios:
    def test_single_contacts_source_is_valid(self, contacts_properties, client_factory):
        config = SourceConfig(**contacts_properties)

        failures = validate(config, client_factory=client_factory)
        schema = prepare(config).schema

        assert failures == []
        assert schema.field_names == ["email", "first_name"]
        assert all(not f.nullable for f in schema.fields)
        assert DISCRIMINATOR_FIELD not in schema.field_names

    def test_missing_date_range_is_the_only_failure(self, client_factory):
        config = SourceConfig(
            authType="api",
            sendGridApiKey="SG.test-key",
            dataSourceTypes="MarketingCampaign,Statistic",
            dataSourceMarketing="Contacts",
            dataSourceStats="CategoryStats",
            dataSourceFields="email,date,opens",
        )

        failures = validate(config, client_factory=client_factory)

        assert len(failures) == 1
        assert failures[0].property_key == "start_date"
        assert failures[0].kind == FailureKind.MISSING_REQUIRED_FIELD

    def test_out_of_range_date_gives_one_failure(self, client_factory):
        config = SourceConfig(**stats_properties(start_date="2020-13-40"))

        failures = validate(config, client_factory=client_factory)

        assert len(failures) == 1
        assert failures[0].property_key == "start_date"
        assert failures[0].kind == FailureKind.OUT_OF_RANGE_DATE
        assert "MM" in failures[0].message and "DD" in failures[0].message

    def test_calendar_invalid_date_passes(self, client_factory):
        config = SourceConfig(**stats_properties(start_date="2020-02-30"))
        assert validate(config, client_factory=client_factory) == []


class TestNoShortCircuit:
    def test_independent_problems_all_reported(self):
        config = SourceConfig(
            authType="oauth",
            dataSourceTypes="",
            start_date="2020/01/01",
        )

        failures = validate(config)
        keys = keys_of(failures)

        assert len(failures) >= 3
        assert "authType" in keys
        assert "dataSourceTypes" in keys
        assert "start_date" in keys

    def test_validation_does_not_mutate_config(self, contacts_properties):
        config = SourceConfig(**contacts_properties)
        before = config.model_dump()
        validate(config, check_connection=False)
        assert config.model_dump() == before


class TestAuthChecks:
    def test_invalid_auth_type(self, contacts_properties, client_factory):
        contacts_properties["authType"] = "token"
        failures = validate(SourceConfig(**contacts_properties), client_factory=client_factory)

        assert keys_of(failures) == ["authType"]
        assert failures[0].kind == FailureKind.INVALID_ENUM_VALUE
        assert "token" in failures[0].message
        assert client_factory.auths == []

    def test_missing_auth_type(self, contacts_properties):
        del contacts_properties["authType"]
        failures = validate(SourceConfig(**contacts_properties))
        assert keys_of(failures) == ["authType"]

    def test_missing_api_key(self, contacts_properties, client_factory):
        contacts_properties["sendGridApiKey"] = ""
        failures = validate(SourceConfig(**contacts_properties), client_factory=client_factory)

        assert keys_of(failures) == ["sendGridApiKey"]
        assert failures[0].message == "API Key is not set"
        assert client_factory.auths == []

    def test_basic_auth_missing_both(self, contacts_properties, client_factory):
        contacts_properties["authType"] = "basic"
        failures = validate(SourceConfig(**contacts_properties), client_factory=client_factory)

        assert keys_of(failures) == ["username", "password"]
        assert all(f.kind == FailureKind.MISSING_REQUIRED_FIELD for f in failures)

    def test_basic_auth_builds_client(self, contacts_properties, client_factory):
        contacts_properties.update(authType="basic", username="user", password="secret")
        failures = validate(SourceConfig(**contacts_properties), client_factory=client_factory)

        assert failures == []
        assert client_factory.auths == [BasicAuth(username="user", password="secret")]
        assert client_factory.probes[0].calls == 1


class TestConnectivity:
    def test_api_key_connectivity_failure(self, contacts_properties, failing_client_factory):
        failures = validate(
            SourceConfig(**contacts_properties), client_factory=failing_client_factory
        )

        assert len(failures) == 1
        assert failures[0].property_keys == ("sendGridApiKey",)
        assert failures[0].kind == FailureKind.CONNECTIVITY_FAILURE
        assert "Connection refused" in failures[0].detail
        assert failing_client_factory.auths == [ApiKeyAuth(api_key="SG.test-key")]

    def test_basic_connectivity_failure_keys_both(self, contacts_properties, failing_client_factory):
        contacts_properties.update(authType="basic", username="user", password="secret")
        failures = validate(
            SourceConfig(**contacts_properties), client_factory=failing_client_factory
        )

        assert failures[0].property_keys == ("username", "password")

    def test_probe_skipped_when_disabled(self, contacts_properties, failing_client_factory):
        failures = validate(
            SourceConfig(**contacts_properties),
            client_factory=failing_client_factory,
            check_connection=False,
        )
        assert failures == []
        assert failing_client_factory.probes == []

    def test_connectivity_client_closed(self, contacts_properties, client_factory):
        validate(SourceConfig(**contacts_properties), client_factory=client_factory)

        assert len(client_factory.probes) == 1
        assert client_factory.probes[0].closed is True

    def test_connectivity_client_closed_after_failure(self, contacts_properties, failing_client_factory):
        validate(SourceConfig(**contacts_properties), client_factory=failing_client_factory)
        assert failing_client_factory.probes[0].closed is True

    def test_prepare_builds_no_client(self, contacts_properties, client_factory):
        prepare(SourceConfig(**contacts_properties), client_factory=client_factory)
        assert client_factory.auths == []

    def test_client_factory_uses_settings(self, contacts_properties):
        settings = ClientSettings(base_url="http://127.0.0.1:9/v3", timeout_seconds=1.5)
        built = []

        def check_connection(client):
            built.append(client)

        with patch.object(SendGridClient, "check_connection", autospec=True, side_effect=check_connection):
            failures = validate(
                SourceConfig(**contacts_properties),
                client_factory=make_client_factory(settings),
            )

        assert failures == []
        assert built[0].base_url == "http://127.0.0.1:9/v3"
        assert built[0].settings.timeout_seconds == 1.5


class TestSelectionChecks:
    def test_empty_categories(self, contacts_properties):
        contacts_properties["dataSourceTypes"] = " , "
        failures = validate(SourceConfig(**contacts_properties), check_connection=False)

        assert keys_of(failures) == ["dataSourceTypes"]
        assert failures[0].kind == FailureKind.EMPTY_SELECTION

    def test_unknown_category(self, contacts_properties):
        contacts_properties["dataSourceTypes"] = "MarketingCampaign,Webhooks"
        failures = validate(SourceConfig(**contacts_properties), check_connection=False)

        assert keys_of(failures) == ["dataSourceTypes"]
        assert "Webhooks" in failures[0].message
        assert failures[0].kind == FailureKind.INVALID_ENUM_VALUE

    def test_category_without_objects(self, contacts_properties):
        contacts_properties["dataSourceTypes"] = "MarketingCampaign,Suppression"
        failures = validate(SourceConfig(**contacts_properties), check_connection=False)

        assert keys_of(failures) == ["dataSource"]
        assert failures[0].message == "No objects selected for the category: Suppression"

    def test_unknown_object(self, contacts_properties):
        contacts_properties["dataSourceMarketing"] = "Contacts,Campaigns"
        failures = validate(SourceConfig(**contacts_properties), check_connection=False)

        assert keys_of(failures) == ["dataSource"]
        assert "Campaigns" in failures[0].message

    def test_object_without_matching_fields(self, contacts_properties):
        contacts_properties.update(
            dataSourceTypes="MarketingCampaign,Suppression",
            dataSourceSuppressions="SpamReports",
            dataSourceFields="first_name",
        )
        failures = validate(SourceConfig(**contacts_properties), check_connection=False)

        assert keys_of(failures) == ["dataSourceFields"]
        assert "SpamReports" in failures[0].message


class TestDateChecks:
    @pytest.mark.parametrize("value", ["2020-1-01", "20-01-01", "2020-01-011", "2020-01-01x", "yesterday"])
    def test_malformed(self, value):
        failures = validate(SourceConfig(**stats_properties(end_date=value)), check_connection=False)

        assert keys_of(failures) == ["end_date"]
        assert failures[0].kind == FailureKind.MALFORMED_DATE

    @pytest.mark.parametrize("value", ["2020-00-10", "2020-01-00", "2020-12-32"])
    def test_out_of_range(self, value):
        failures = validate(SourceConfig(**stats_properties(end_date=value)), check_connection=False)

        assert keys_of(failures) == ["end_date"]
        assert failures[0].kind == FailureKind.OUT_OF_RANGE_DATE

    def test_single_digit_day_accepted(self):
        failures = validate(SourceConfig(**stats_properties(end_date="2020-01-5")), check_connection=False)
        assert failures == []


class TestPrepare:
    def test_raises_with_all_failures(self, contacts_properties):
        contacts_properties.update(authType="nope", dataSourceFields="")
        with pytest.raises(ConfigValidationError) as exc_info:
            prepare(SourceConfig(**contacts_properties))

        assert keys_of(exc_info.value.failures) == ["authType", "dataSourceFields"]

    def test_prepared_source(self):
        config = SourceConfig(
            **stats_properties(
                dataSourceTypes="Statistic,Suppression",
                dataSourceSuppressions="Bounces",
                dataSourceFields="date,opens,email",
                statCategories="newsletter",
            )
        )
        prepared = prepare(config)

        assert prepared.selection.multi_object_mode is True
        assert prepared.schema.field_names == [DISCRIMINATOR_FIELD, "date", "opens", "email"]
        assert prepared.request_arguments == {
            "start_date": "2024-01-01",
            "statCategories": "newsletter",
        }
        assert prepared.object_schema("Bounces").field_names == [DISCRIMINATOR_FIELD, "email"]


class TestFailureCollector:
    def test_for_property(self):
        collector = FailureCollector()
        collector.add_failure("a", "username", "password", kind=FailureKind.CONNECTIVITY_FAILURE)
        collector.add_failure("b", "authType", kind=FailureKind.INVALID_ENUM_VALUE)

        assert len(collector) == 2
        assert [f.message for f in collector.for_property("password")] == ["a"]

    def test_validator_is_rerunnable(self, contacts_properties, client_factory):
        validator = ConfigValidator(SourceConfig(**contacts_properties), client_factory=client_factory)
        assert validator.validate() == []
        assert validator.validate() == []
