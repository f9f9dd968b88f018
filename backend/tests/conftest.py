"""Shared fixtures for the SendGrid pipeline tests."""

import sys
from pathlib import Path

import pytest

# Add backend and tests to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeClientFactory
from sendgrid_pipeline.core.errors import SendGridConnectionError


@pytest.fixture
def contacts_properties():
    """A valid single-object configuration."""
    return {
        "referenceName": "Contacts",
        "authType": "api",
        "sendGridApiKey": "SG.test-key",
        "dataSourceTypes": "MarketingCampaign",
        "dataSourceMarketing": "Contacts",
        "dataSourceFields": "email,first_name",
    }


@pytest.fixture
def client_factory():
    return FakeClientFactory()


@pytest.fixture
def failing_client_factory():
    return FakeClientFactory(error=SendGridConnectionError("Connection refused"))
