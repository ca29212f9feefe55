"""Tests for legacy record transformation."""

from __future__ import annotations

from datetime import datetime

import bcrypt
import pytest

from shiftmigrate.errors import TransformError
from shiftmigrate.models.legacy import LegacyEvent, LegacySignup, LegacyUser
from shiftmigrate.models.migration import MigrationOptions
from shiftmigrate.models.target import SignupStatus
from shiftmigrate.services.transformer import RecordTransformer
from tests.helpers import BASE_URL, field_list_user

FIXED_NOW = datetime(2025, 10, 1, 9, 30)


@pytest.fixture
def fixed_transformer(options: MigrationOptions) -> RecordTransformer:
    return RecordTransformer(options, base_url=BASE_URL, password_rounds=4, now=lambda: FIXED_NOW)


class TestTransformUser:
    def test_field_list_user(self, transformer: RecordTransformer) -> None:
        avatar = [{"__media_urls__": {"__original__": "/storage/1/ada.jpg", "preview": "/p.jpg"}}]
        user = LegacyUser.from_raw(field_list_user(1, "Ada@Example.org", avatar=avatar))

        draft = transformer.transform_user(user)

        assert draft.email == "ada@example.org"
        assert draft.name == "Ada Lovelace"
        assert draft.phone == "021 555 0100"
        assert draft.created_at == datetime(2023, 4, 1, 10, 0)
        assert draft.profile_photo_url == f"{BASE_URL}/storage/1/ada.jpg"
        assert draft.photo_source == draft.profile_photo_url
        assert draft.profile_completed is False
        assert draft.is_migrated is True
        assert draft.legacy_id == "1"

    def test_flat_user(self, transformer: RecordTransformer) -> None:
        user = LegacyUser.from_raw({
            "id": 5, "email": "flat@example.org", "first_name": "Flat",
            "last_name": "", "photo": "https://cdn.example.org/f.jpg",
        })

        draft = transformer.transform_user(user)
        assert draft.name == "Flat"
        assert draft.profile_photo_url == "https://cdn.example.org/f.jpg"

    def test_name_falls_back_to_email(self, transformer: RecordTransformer) -> None:
        draft = transformer.transform_user(LegacyUser(id="3", email="nobody@example.org"))
        assert draft.name == "nobody@example.org"

    def test_unparsable_approved_at_uses_now(self, fixed_transformer: RecordTransformer) -> None:
        user = LegacyUser(id="4", email="late@example.org", approved_at="not a date at all")

        draft = fixed_transformer.transform_user(user)

        assert draft.created_at == FIXED_NOW
        assert any("late@example.org" in w for w in fixed_transformer.warnings)

    def test_missing_approved_at_is_not_a_warning(self, fixed_transformer: RecordTransformer) -> None:
        draft = fixed_transformer.transform_user(LegacyUser(id="4", email="new@example.org"))
        assert draft.created_at == FIXED_NOW
        assert fixed_transformer.warnings == []

    def test_timezone_aware_approved_at_is_normalized(self, transformer: RecordTransformer) -> None:
        user = LegacyUser(id="6", email="tz@example.org", approved_at="2024-01-01T12:00:00+13:00")
        assert transformer.transform_user(user).created_at == datetime(2023, 12, 31, 23, 0)

    def test_random_credential_is_hashed(self, transformer: RecordTransformer) -> None:
        first = transformer.transform_user(LegacyUser(id="1", email="a@example.org"))
        second = transformer.transform_user(LegacyUser(id="2", email="b@example.org"))

        assert first.hashed_password.startswith("$2")
        assert first.hashed_password != second.hashed_password

    def test_default_password(self) -> None:
        options = MigrationOptions(default_password="changeme", mark_as_migrated=False)
        transformer = RecordTransformer(options, password_rounds=4)

        draft = transformer.transform_user(LegacyUser(id="1", email="a@example.org"))

        assert bcrypt.checkpw(b"changeme", draft.hashed_password.encode())
        assert draft.is_migrated is False

    def test_missing_email_raises(self, transformer: RecordTransformer) -> None:
        with pytest.raises(TransformError, match="no email"):
            transformer.transform_user(LegacyUser(id="9"))


class TestTransformEvent:
    def test_wellington_kitchen_prep_scenario(self, transformer: RecordTransformer) -> None:
        event = LegacyEvent(id="10", name="Sunday 7th September WGTN")
        signups = [LegacySignup(id="100", user_id="1", event_id="10", status="3", position="Kitchen Prep")]

        draft = transformer.transform_event(event, signups)

        assert draft.shift_type_name == "Kitchen Prep"
        assert draft.start == datetime(2025, 9, 7, 12, 0)
        assert draft.end == datetime(2025, 9, 7, 16, 0)
        assert draft.location == "Wellington"
        assert draft.capacity == 10
        assert draft.notes == "Event: Sunday 7th September WGTN\nLegacy ID: 10"

    def test_shift_type_from_city_hint(self, transformer: RecordTransformer) -> None:
        draft = transformer.transform_event(LegacyEvent(id="11", name="Friday 12th September AKL"), [])
        assert draft.shift_type_name == "Auckland Event"
        assert draft.location == "Auckland"
        assert (draft.start.hour, draft.start.minute) == (17, 30)

    def test_shift_type_default(self, transformer: RecordTransformer) -> None:
        draft = transformer.transform_event(LegacyEvent(id="12", name="Tuesday 2nd December"), [])
        assert draft.shift_type_name == "General Volunteering"
        assert draft.location == "Unknown Location"
        assert draft.start == datetime(2025, 12, 2, 17, 30)

    def test_structured_date_and_location_win(self, transformer: RecordTransformer) -> None:
        event = LegacyEvent(
            id="13", name="Sunday 7th September WGTN", date="2024-03-15",
            location="Glen Innes", capacity=25,
        )

        draft = transformer.transform_event(event, [])

        assert draft.start == datetime(2024, 3, 15, 17, 30)
        assert draft.location == "Glen Innes"
        assert draft.capacity == 25

    def test_structured_date_keeps_its_own_day(self, transformer: RecordTransformer) -> None:
        event = LegacyEvent(id="16", name="x", date="2025-09-07T00:00:00+12:00")

        draft = transformer.transform_event(event, [])

        assert draft.start == datetime(2025, 9, 7, 17, 30)
        assert draft.end == datetime(2025, 9, 7, 21, 0)

    def test_no_date_falls_back_to_now(self, fixed_transformer: RecordTransformer) -> None:
        draft = fixed_transformer.transform_event(LegacyEvent(id="14", name="Pop-up dinner"), [])

        assert draft.start.date() == FIXED_NOW.date()
        assert any("No date found" in w for w in fixed_transformer.warnings)

    def test_invalid_day_month_falls_back_to_now(self, fixed_transformer: RecordTransformer) -> None:
        draft = fixed_transformer.transform_event(LegacyEvent(id="15", name="31st February WGTN"), [])
        assert draft.start.date() == FIXED_NOW.date()

    def test_shift_type_description(self, transformer: RecordTransformer) -> None:
        draft = transformer.transform_shift_type("Dishwasher")
        assert draft.description == "Migrated from legacy system - Dishwasher"


class TestTransformSignup:
    def test_status_code(self, transformer: RecordTransformer) -> None:
        signup = LegacySignup(id="1", status="4", created_at="2025-08-01 08:00:00")

        draft = transformer.transform_signup(signup, "user-1", "shift-1")

        assert draft.status == SignupStatus.WAITLISTED
        assert (draft.user_id, draft.shift_id) == ("user-1", "shift-1")
        assert draft.created_at == datetime(2025, 8, 1, 8, 0)

    def test_canceled_uses_updated_at(self, transformer: RecordTransformer) -> None:
        signup = LegacySignup(id="2", status="Cancelled", updated_at="2025-08-02 09:00:00")

        draft = transformer.transform_signup(signup, "u", "s")

        assert draft.status == SignupStatus.CANCELED
        assert draft.canceled_at == datetime(2025, 8, 2, 9, 0)

    def test_unknown_status_is_pending_with_warning(self, transformer: RecordTransformer) -> None:
        draft = transformer.transform_signup(LegacySignup(id="3", status="archived"), "u", "s")

        assert draft.status == SignupStatus.PENDING
        assert transformer.drain_warnings()
        assert transformer.warnings == []
