"""Shared fixtures."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from shiftmigrate.extractors.session import LegacySession
from shiftmigrate.models.legacy import LegacyEvent, LegacySignup, LegacyUser, ScrapedDataset
from shiftmigrate.models.migration import MigrationOptions
from shiftmigrate.services.transformer import RecordTransformer
from tests.helpers import BASE_URL


@pytest.fixture
def http() -> Mock:
    """A requests.Session stand-in."""
    return Mock()


@pytest.fixture
def legacy_session(http: Mock) -> LegacySession:
    return LegacySession(BASE_URL, "csrf-token-abcdef", {"laravel_session": "abc"}, http=http)


@pytest.fixture
def options() -> MigrationOptions:
    return MigrationOptions()


@pytest.fixture
def transformer(options: MigrationOptions) -> RecordTransformer:
    return RecordTransformer(options, base_url=BASE_URL, password_rounds=4, reference_year=2025)


@pytest.fixture
def small_dataset() -> ScrapedDataset:
    """Two users, two events and three signups."""
    users = [
        LegacyUser(id="1", email="ada@example.org", first_name="Ada", last_name="Lovelace",
                   approved_at="2023-04-01T10:00:00"),
        LegacyUser(id="2", email="grace@example.org", first_name="Grace", last_name="Hopper"),
    ]
    events = [
        LegacyEvent(id="10", name="Sunday 7th September WGTN"),
        LegacyEvent(id="11", name="Friday 12th September AKL", capacity=20),
    ]
    signups = [
        LegacySignup(id="100", user_id="1", event_id="10", status="3", position="Kitchen Prep"),
        LegacySignup(id="101", user_id="2", event_id="10", status="4", position="Kitchen Prep"),
        LegacySignup(id="102", user_id="2", event_id="11", status="cancelled", position="Dishwasher"),
    ]
    return ScrapedDataset(users=users, events=events, signups=signups)
