"""Tests for idempotent import."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from shiftmigrate.errors import DuplicateEntityError, ImportRecordError, PhotoError
from shiftmigrate.extractors.photos import EmbeddedImage
from shiftmigrate.loaders.importer import IdempotentImporter, ImportOutcome
from shiftmigrate.loaders.memory_store import InMemoryTargetStore
from shiftmigrate.models.legacy import LegacyEvent, LegacySignup, LegacyUser, ScrapedDataset
from shiftmigrate.models.migration import MigrationOptions
from shiftmigrate.models.target import UserDraft
from shiftmigrate.services.transformer import RecordTransformer


def make_importer(store, **option_overrides) -> IdempotentImporter:
    options = MigrationOptions(**option_overrides)
    transformer = RecordTransformer(options, password_rounds=4, reference_year=2025)
    return IdempotentImporter(store, transformer, options)


def stats_of(result):
    return {kind: stats.to_dict() for kind, stats in result.stats.items()}


def test_import_dataset_creates_everything(small_dataset: ScrapedDataset) -> None:
    store = InMemoryTargetStore()

    result = make_importer(store).import_dataset(small_dataset)

    assert stats_of(result) == {
        "user": {"processed": 2, "created": 2, "skipped": 0},
        "shift_type": {"processed": 2, "created": 2, "skipped": 0},
        "shift": {"processed": 2, "created": 2, "skipped": 0},
        "signup": {"processed": 3, "created": 3, "skipped": 0},
    }
    assert result.errors == []
    assert result.is_consistent()
    assert store.counts() == {"user": 2, "shift_type": 2, "shift": 2, "signup": 3}
    statuses = sorted(s["status"] for s in store.signups.values())
    assert statuses == ["CANCELED", "CONFIRMED", "WAITLISTED"]


def test_second_import_creates_nothing(small_dataset: ScrapedDataset) -> None:
    store = InMemoryTargetStore()
    make_importer(store).import_dataset(small_dataset)
    first_state = store.counts()

    result = make_importer(store).import_dataset(small_dataset)

    assert store.counts() == first_state
    for kind, stats in result.stats.items():
        assert stats.created == 0, kind
        assert stats.skipped == stats.processed, kind


def test_dry_run_matches_real_run_and_writes_nothing(small_dataset: ScrapedDataset) -> None:
    dry_store = InMemoryTargetStore()
    real_store = InMemoryTargetStore()

    dry = make_importer(dry_store, dry_run=True).import_dataset(small_dataset)
    real = make_importer(real_store).import_dataset(small_dataset)

    assert stats_of(dry) == stats_of(real)
    assert dry_store.counts() == {"user": 0, "shift_type": 0, "shift": 0, "signup": 0}


def test_dry_run_after_real_run_reports_skips(small_dataset: ScrapedDataset) -> None:
    store = InMemoryTargetStore()
    make_importer(store).import_dataset(small_dataset)

    dry = make_importer(store, dry_run=True).import_dataset(small_dataset)

    assert dry.stats["signup"].skipped == 3
    assert dry.stats["signup"].created == 0


def test_case_different_emails_collapse() -> None:
    dataset = ScrapedDataset(users=[
        LegacyUser(id="1", email="a@x.com"),
        LegacyUser(id="2", email="A@X.COM"),
    ])

    for dry_run in (False, True):
        store = InMemoryTargetStore()
        result = make_importer(store, dry_run=dry_run).import_dataset(dataset)

        assert result.stats["user"].created == 1
        assert result.stats["user"].skipped == 1
        assert len(store.users) == (0 if dry_run else 1)


def test_bad_signup_does_not_abort_batch() -> None:
    users = [LegacyUser(id=str(i), email=f"user{i}@example.org") for i in range(1, 11) if i != 5]
    signups = [
        LegacySignup(id=str(i), user_id=str(i) if i != 5 else "999", event_id="10", status="3")
        for i in range(1, 11)
    ]
    dataset = ScrapedDataset(
        users=users,
        events=[LegacyEvent(id="10", name="Sunday 7th September WGTN")],
        signups=signups,
    )

    result = make_importer(InMemoryTargetStore()).import_dataset(dataset)

    assert result.stats["signup"].created == 9
    assert [e.to_dict()["id"] for e in result.errors] == ["5"]
    assert result.errors[0].kind == "signup"
    assert result.is_consistent()


def test_signup_for_unknown_event_is_an_error() -> None:
    dataset = ScrapedDataset(
        users=[LegacyUser(id="1", email="a@example.org")],
        signups=[LegacySignup(id="7", user_id="1", event_id="404", status="3")],
    )

    result = make_importer(InMemoryTargetStore()).import_dataset(dataset)

    assert result.errors_for("signup")[0].legacy_id == "7"
    assert "404" in result.errors_for("signup")[0].message


def test_user_without_email_is_an_error() -> None:
    dataset = ScrapedDataset(users=[LegacyUser(id="1"), LegacyUser(id="2", email="b@example.org")])

    result = make_importer(InMemoryTargetStore()).import_dataset(dataset)

    assert result.stats["user"].created == 1
    assert result.errors_for("user")[0].legacy_id == "1"
    assert result.is_consistent()


def test_write_failure_is_recorded_and_batch_continues() -> None:
    store = InMemoryTargetStore()
    original_create = store.create_user

    def flaky_create(draft: UserDraft) -> str:
        if draft.email == "broken@example.org":
            raise requests.HTTPError("422 Unprocessable Entity")
        return original_create(draft)

    store.create_user = flaky_create
    dataset = ScrapedDataset(users=[
        LegacyUser(id="1", email="broken@example.org"),
        LegacyUser(id="2", email="fine@example.org"),
    ])

    result = make_importer(store).import_dataset(dataset)

    assert result.stats["user"].created == 1
    assert "422" in result.errors_for("user")[0].message


def test_connection_failure_is_fatal() -> None:
    store = Mock(spec=InMemoryTargetStore)
    store.find_user_by_email.side_effect = requests.ConnectionError("store unreachable")

    with pytest.raises(requests.ConnectionError):
        make_importer(store).import_dataset(ScrapedDataset(users=[LegacyUser(id="1", email="a@example.org")]))


def test_unique_violation_on_create_is_skipped() -> None:
    store = Mock(spec=InMemoryTargetStore)
    store.find_user_by_email.side_effect = [None, "existing-id"]
    store.create_user.side_effect = DuplicateEntityError("exists")
    importer = make_importer(store)

    draft = importer.transformer.transform_user(LegacyUser(id="1", email="a@example.org"))
    outcome, target_id = importer.import_user(draft)

    assert outcome == ImportOutcome.SKIPPED
    assert target_id == "existing-id"


def test_existing_user_is_error_when_not_skipping() -> None:
    store = InMemoryTargetStore()
    dataset = ScrapedDataset(users=[LegacyUser(id="1", email="a@example.org")])
    make_importer(store).import_dataset(dataset)

    result = make_importer(store, skip_existing_users=False).import_dataset(dataset)

    assert result.stats["user"].skipped == 0
    assert "already exists" in result.errors_for("user")[0].message


def test_import_shift_requires_resolved_type(transformer: RecordTransformer) -> None:
    importer = IdempotentImporter(InMemoryTargetStore(), transformer)
    draft = transformer.transform_event(LegacyEvent(id="1", name="1st May"), [])

    with pytest.raises(ImportRecordError, match="not resolved"):
        importer.import_shift(draft)


def test_shift_type_failure_marks_its_shifts() -> None:
    store = InMemoryTargetStore()
    store.create_shift_type = Mock(side_effect=ValueError("Create shift_type returned no id"))
    dataset = ScrapedDataset(events=[
        LegacyEvent(id="1", name="1st May"),
        LegacyEvent(id="2", name="2nd May"),
    ])

    result = make_importer(store).import_dataset(dataset)

    assert result.stats["shift_type"].processed == 1
    assert len(result.errors_for("shift_type")) == 1
    assert [e.legacy_id for e in result.errors_for("shift")] == ["1", "2"]
    assert result.is_consistent()


def test_photos_embedded_for_new_users_only() -> None:
    store = InMemoryTargetStore()
    dataset = ScrapedDataset(users=[
        LegacyUser(id="1", email="a@example.org", photo_url="https://legacy/a.jpg"),
        LegacyUser(id="2", email="b@example.org", photo_url="https://legacy/b.jpg"),
    ])
    pipeline = Mock()
    pipeline.download_many.return_value = {
        "a@example.org": EmbeddedImage("image/jpeg", b"jpeg-bytes"),
        "b@example.org": PhotoError("b@example.org", "Invalid content type: text/html"),
    }

    result = make_importer(store).import_dataset(dataset, photo_pipeline=pipeline)

    photos = {u["email"]: u["profilePhotoUrl"] for u in store.users.values()}
    assert photos["a@example.org"].startswith("data:image/jpeg;base64,")
    assert photos["b@example.org"] is None
    assert result.stats["user"].created == 2
    assert result.errors == []
    assert any("b@example.org" in w for w in result.warnings)


def test_photos_skipped_in_dry_run() -> None:
    pipeline = Mock()
    dataset = ScrapedDataset(users=[LegacyUser(id="1", email="a@example.org", photo_url="/a.jpg")])

    make_importer(InMemoryTargetStore(), dry_run=True).import_dataset(dataset, photo_pipeline=pipeline)

    pipeline.download_many.assert_not_called()


def test_photo_lookup_failure_does_not_abort_users() -> None:
    store = InMemoryTargetStore()
    find_user = store.find_user_by_email

    def flaky_find(email):
        if email == "b@example.org":
            raise requests.HTTPError("500 Server Error")
        return find_user(email)

    store.find_user_by_email = flaky_find
    dataset = ScrapedDataset(users=[
        LegacyUser(id="1", email="a@example.org", photo_url="https://legacy/a.jpg"),
        LegacyUser(id="2", email="b@example.org", photo_url="https://legacy/b.jpg"),
    ])
    pipeline = Mock()
    pipeline.download_many.return_value = {"a@example.org": EmbeddedImage("image/jpeg", b"jpeg-bytes")}

    result = make_importer(store).import_dataset(dataset, photo_pipeline=pipeline)

    assert pipeline.download_many.call_args.args[0] == {"a@example.org": "https://legacy/a.jpg"}
    assert result.stats["user"].created == 1
    assert [e.legacy_id for e in result.errors_for("user")] == ["2"]
    assert any("b@example.org" in w for w in result.warnings)
    assert result.is_consistent()


def test_photo_lookup_connection_failure_is_fatal() -> None:
    store = InMemoryTargetStore()
    store.find_user_by_email = Mock(side_effect=requests.ConnectionError("refused"))
    dataset = ScrapedDataset(users=[LegacyUser(id="1", email="a@example.org", photo_url="/a.jpg")])

    with pytest.raises(requests.ConnectionError):
        make_importer(store).import_dataset(dataset, photo_pipeline=Mock())


def test_page_errors_are_reported() -> None:
    dataset = ScrapedDataset(
        users=[LegacyUser(id="1", email="a@example.org")],
        metadata={"page_errors": [{"resource": "users", "page": 2, "error": "HTTP 500"}]},
    )

    result = make_importer(InMemoryTargetStore()).import_dataset(dataset)

    assert [e.to_dict() for e in result.errors_for("page")] == [
        {"kind": "page", "id": "users page 2", "message": "HTTP 500"}
    ]
    assert result.stats["user"].created == 1
    assert result.is_consistent()
