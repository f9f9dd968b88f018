"""Tests for the selection resolver."""

from sendgrid_pipeline.core.catalog import DataSourceCategory
from sendgrid_pipeline.core.config_models import SourceConfig
from sendgrid_pipeline.core.selection import (
    is_multi_object_mode,
    resolve,
    resolve_categories,
    resolve_fields,
    resolve_objects,
    split_tokens,
)


class TestTokenSplitting:
    def test_empty_values(self):
        assert split_tokens(None) == []
        assert split_tokens("") == []

    def test_strips_and_drops_empty_entries(self):
        assert split_tokens(" a, ,b ,,c") == ["a", "b", "c"]


class TestResolveFields:
    def test_keeps_order_and_duplicates(self):
        assert resolve_fields("email,first_name,email") == ["email", "first_name", "email"]

    def test_empty_string_is_empty_list(self):
        assert resolve_fields("") == []


class TestResolveCategories:
    def test_known_and_unknown_tokens(self):
        resolution = resolve_categories(["Statistic", "Bogus", "Suppression"])
        assert resolution.categories == (
            DataSourceCategory.STATISTIC,
            DataSourceCategory.SUPPRESSION,
        )
        assert resolution.unknown == ("Bogus",)

    def test_never_raises_on_garbage(self):
        resolution = resolve_categories(["", "  ", "???"])
        assert resolution.categories == ()
        assert len(resolution.unknown) == 3


class TestResolveObjects:
    def test_slot_order(self):
        objects = resolve_objects("Contacts", "GlobalStats,CategoryStats", "Bounces")
        assert objects == ["Contacts", "GlobalStats", "CategoryStats", "Bounces"]

    def test_missing_slots(self):
        assert resolve_objects(None, "", " Bounces ") == ["Bounces"]


class TestMultiObjectMode:
    def test_empty_and_single(self):
        assert is_multi_object_mode([]) is False
        assert is_multi_object_mode(["Contacts"]) is False

    def test_repeated_object_is_single(self):
        assert is_multi_object_mode(["Contacts", "Contacts"]) is False

    def test_ignores_empty_entries(self):
        assert is_multi_object_mode(["Contacts", ""]) is False

    def test_two_distinct_objects(self):
        assert is_multi_object_mode(["Contacts", "Bounces"]) is True


class TestResolve:
    def test_selection_from_config(self):
        config = SourceConfig(
            dataSourceTypes="MarketingCampaign,Suppression,Other",
            dataSourceMarketing="Contacts",
            dataSourceSuppressions="Bounces",
            dataSourceFields="email,created",
        )
        selection = resolve(config)

        assert selection.category_tokens == ("MarketingCampaign", "Suppression", "Other")
        assert selection.categories == (
            DataSourceCategory.MARKETING_CAMPAIGN,
            DataSourceCategory.SUPPRESSION,
        )
        assert selection.unknown_categories == ("Other",)
        assert selection.objects == ("Contacts", "Bounces")
        assert selection.fields == ("email", "created")
        assert selection.multi_object_mode is True

    def test_known_and_unknown_objects(self):
        config = SourceConfig(dataSourceMarketing="Contacts,Nope")
        assert config.selection.known_objects() == ["Contacts"]
        assert config.selection.unknown_objects() == ["Nope"]

    def test_to_dict(self):
        config = SourceConfig(dataSourceTypes="Statistic", dataSourceStats="GlobalStats")
        data = config.selection.to_dict()
        assert data["categories"] == ["Statistic"]
        assert data["objects"] == ["GlobalStats"]
        assert data["multi_object_mode"] is False
