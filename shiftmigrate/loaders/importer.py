"""Idempotent import of transformed drafts into a target store."""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from .base import TargetStore
from ..errors import DuplicateEntityError, ImportRecordError, PhotoError, TransformError
from ..extractors.photos import EmbeddedImage, PhotoPipeline
from ..models.legacy import ScrapedDataset
from ..models.migration import MigrationOptions, TransformationResult
from ..models.target import ShiftDraft, ShiftTypeDraft, SignupDraft, UserDraft
from ..services.transformer import RecordTransformer

logger = logging.getLogger(__name__)


class ImportOutcome(str, Enum):
    """Result of importing one draft."""
    CREATED = "created"
    SKIPPED = "skipped"


class IdempotentImporter:
    """
    Imports drafts in dependency order: users, shift types, shifts, signups.

    Each draft is looked up by its dedup key first and only created when
    absent, so re-running an import never duplicates an entity. A dry run
    performs the same lookups, writes nothing and hands out ``dry-run-*``
    ids so later stages resolve exactly as they would in a real run.

    Connection failures to the store are fatal and propagate; every other
    failure is recorded against its record and the batch continues.
    """

    def __init__(
        self,
        store: TargetStore,
        transformer: Optional[RecordTransformer] = None,
        options: Optional[MigrationOptions] = None,
    ):
        """
        Initialize the importer.

        Args:
            store: Target store
            transformer: Record transformer (built from options if omitted)
            options: Import policy
        """
        self.store = store
        self.options = options or MigrationOptions()
        self.transformer = transformer or RecordTransformer(self.options)
        self._dry_run_ids: Dict[str, Dict[Any, str]] = {}
        self._dry_run_counter = 0

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    def _dry_run_id(self, kind: str, key: Any) -> str:
        self._dry_run_counter += 1
        new_id = f"dry-run-{kind}-{self._dry_run_counter}"
        self._dry_run_ids.setdefault(kind, {})[key] = new_id
        return new_id

    def _import(
        self,
        kind: str,
        key: Any,
        find: Callable[[], Optional[str]],
        create: Callable[[], str],
        skip_existing: bool = True,
    ) -> Tuple[ImportOutcome, str]:
        """Lookup-then-create for one draft."""
        try:
            existing = self._dry_run_ids.get(kind, {}).get(key) or find()
        except requests.ConnectionError:
            raise
        except (requests.RequestException, ValueError) as e:
            raise ImportRecordError(f"Lookup failed: {e}") from e

        if existing:
            if not skip_existing:
                raise ImportRecordError(f"{kind} {key!r} already exists")
            return ImportOutcome.SKIPPED, existing

        if self.dry_run:
            return ImportOutcome.CREATED, self._dry_run_id(kind, key)

        try:
            return ImportOutcome.CREATED, create()
        except DuplicateEntityError:
            # Lost a race with a concurrent writer; the entity exists now
            logger.info(f"{kind} {key!r} created concurrently, skipping")
            found = find()
            if not found:
                raise ImportRecordError(f"{kind} {key!r} reported duplicate but cannot be found")
            return ImportOutcome.SKIPPED, found
        except requests.ConnectionError:
            raise
        except (requests.RequestException, ValueError) as e:
            raise ImportRecordError(f"Create failed: {e}") from e

    def import_user(self, draft: UserDraft) -> Tuple[ImportOutcome, str]:
        return self._import(
            "user",
            draft.dedup_key,
            lambda: self.store.find_user_by_email(draft.dedup_key),
            lambda: self.store.create_user(draft),
            skip_existing=self.options.skip_existing_users,
        )

    def import_shift_type(self, draft: ShiftTypeDraft) -> Tuple[ImportOutcome, str]:
        return self._import(
            "shift_type",
            draft.dedup_key,
            lambda: self.store.find_shift_type_by_name(draft.name),
            lambda: self.store.create_shift_type(draft),
        )

    def import_shift(self, draft: ShiftDraft) -> Tuple[ImportOutcome, str]:
        """Import a shift. ``draft.shift_type_id`` must already be resolved."""
        if not draft.shift_type_id:
            raise ImportRecordError(f"Shift type {draft.shift_type_name!r} is not resolved")
        return self._import(
            "shift",
            (draft.start, draft.end, draft.shift_type_id),
            lambda: self.store.find_shift_by_window(draft.start, draft.end, draft.shift_type_id),
            lambda: self.store.create_shift(draft),
            skip_existing=self.options.skip_existing_shifts,
        )

    def import_signup(self, draft: SignupDraft) -> Tuple[ImportOutcome, str]:
        return self._import(
            "signup",
            draft.dedup_key,
            lambda: self.store.find_signup_by_user_and_shift(draft.user_id, draft.shift_id),
            lambda: self.store.create_signup(draft),
        )

    def _count(self, result: TransformationResult, kind: str, outcome: ImportOutcome) -> None:
        stats = result.stats[kind]
        if outcome == ImportOutcome.CREATED:
            stats.created += 1
        else:
            stats.skipped += 1

    # ------------------------------------------------------------- photos

    def attach_photos(self, drafts: List[UserDraft], pipeline: PhotoPipeline, result: TransformationResult) -> None:
        """Replace photo URLs with embedded images for users about to be created."""
        pending = {}
        for draft in drafts:
            if not draft.photo_source:
                continue
            try:
                existing = self.store.find_user_by_email(draft.dedup_key)
            except requests.ConnectionError:
                raise
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"Photo lookup failed for {draft.email}: {e}")
                result.add_warning(f"Photo for {draft.email} skipped, lookup failed: {e}")
                draft.profile_photo_url = None
                continue
            if not existing:
                pending.setdefault(draft.dedup_key, draft.photo_source)

        if not pending:
            return

        logger.info(f"Downloading {len(pending)} profile photos")
        photos = pipeline.download_many(pending, workers=self.options.photo_workers)

        for draft in drafts:
            photo = photos.get(draft.dedup_key)
            if isinstance(photo, EmbeddedImage):
                draft.profile_photo_url = photo.to_data_url()
            elif isinstance(photo, PhotoError):
                result.add_warning(str(photo))
                draft.profile_photo_url = None

    # ------------------------------------------------------------ dataset

    def import_dataset(
        self,
        dataset: ScrapedDataset,
        photo_pipeline: Optional[PhotoPipeline] = None,
        result: Optional[TransformationResult] = None,
    ) -> TransformationResult:
        """
        Transform and import a whole dataset.

        Args:
            dataset: Scraped legacy records
            photo_pipeline: Downloads photos when set and photos are enabled
            result: Result to fill in, so a caller keeps partial stats if
                a fatal error escapes

        Returns:
            TransformationResult with per-kind stats, errors and warnings
        """
        result = result if result is not None else TransformationResult()
        mode = "DRY RUN" if self.dry_run else "LIVE"
        logger.info(
            f"Importing {len(dataset.users)} users, {len(dataset.events)} events, "
            f"{len(dataset.signups)} signups ({mode})"
        )

        for page_error in dataset.metadata.get("page_errors", []):
            resource, page = page_error.get("resource"), page_error.get("page")
            result.add_error("page", f"{resource} page {page}", str(page_error.get("error", "")))

        user_ids = self._import_users(dataset, photo_pipeline, result)
        shift_ids = self._import_shifts(dataset, result)
        self._import_signups(dataset, user_ids, shift_ids, result)

        for warning in self.transformer.drain_warnings():
            result.add_warning(warning)

        for kind, stats in result.stats.items():
            logger.info(
                f"{kind}: {stats.processed} processed, {stats.created} created, "
                f"{stats.skipped} skipped, {len(result.errors_for(kind))} errors"
            )
        return result

    def _import_users(
        self,
        dataset: ScrapedDataset,
        photo_pipeline: Optional[PhotoPipeline],
        result: TransformationResult,
    ) -> Dict[str, str]:
        drafts: List[Tuple[str, UserDraft]] = []
        for user in dataset.users:
            result.stats["user"].processed += 1
            try:
                drafts.append((user.id, self.transformer.transform_user(user)))
            except TransformError as e:
                logger.error(f"Error transforming user {user.id}: {e}")
                result.add_error("user", user.id, str(e))

        if photo_pipeline and self.options.download_photos and not self.dry_run:
            self.attach_photos([d for _, d in drafts], photo_pipeline, result)

        user_ids: Dict[str, str] = {}
        for legacy_id, draft in drafts:
            try:
                outcome, target_id = self.import_user(draft)
            except ImportRecordError as e:
                logger.error(f"Error importing user {draft.email}: {e}")
                result.add_error("user", legacy_id, str(e))
                continue
            self._count(result, "user", outcome)
            user_ids[legacy_id] = target_id
            logger.debug(f"User {draft.email}: {outcome.value}")

        return user_ids

    def _import_shifts(self, dataset: ScrapedDataset, result: TransformationResult) -> Dict[str, str]:
        signups_by_event = dataset.signups_by_event()
        shift_type_ids: Dict[str, Optional[str]] = {}
        shift_ids: Dict[str, str] = {}

        for event in dataset.events:
            result.stats["shift"].processed += 1
            try:
                draft = self.transformer.transform_event(event, signups_by_event.get(event.id, []))
            except TransformError as e:
                logger.error(f"Error transforming event {event.id}: {e}")
                result.add_error("shift", event.id, str(e))
                continue

            type_name = draft.shift_type_name
            if type_name not in shift_type_ids:
                shift_type_ids[type_name] = self._resolve_shift_type(type_name, result)

            draft.shift_type_id = shift_type_ids[type_name]
            try:
                outcome, target_id = self.import_shift(draft)
            except ImportRecordError as e:
                logger.error(f"Error importing shift for event {event.id}: {e}")
                result.add_error("shift", event.id, str(e))
                continue

            self._count(result, "shift", outcome)
            shift_ids[event.id] = target_id

        return shift_ids

    def _resolve_shift_type(self, name: str, result: TransformationResult) -> Optional[str]:
        result.stats["shift_type"].processed += 1
        try:
            outcome, target_id = self.import_shift_type(self.transformer.transform_shift_type(name))
        except ImportRecordError as e:
            logger.error(f"Error importing shift type {name!r}: {e}")
            result.add_error("shift_type", name, str(e))
            return None
        self._count(result, "shift_type", outcome)
        return target_id

    def _import_signups(
        self,
        dataset: ScrapedDataset,
        user_ids: Dict[str, str],
        shift_ids: Dict[str, str],
        result: TransformationResult,
    ) -> None:
        for signup in dataset.signups:
            result.stats["signup"].processed += 1

            user_id = user_ids.get(signup.user_id or "")
            shift_id = shift_ids.get(signup.event_id or "")
            if not user_id:
                result.add_error("signup", signup.id, f"User {signup.user_id} not found in migrated users")
                continue
            if not shift_id:
                result.add_error("signup", signup.id, f"Event {signup.event_id} not found in migrated shifts")
                continue

            try:
                outcome, _ = self.import_signup(self.transformer.transform_signup(signup, user_id, shift_id))
            except (TransformError, ImportRecordError) as e:
                logger.error(f"Error importing signup {signup.id}: {e}")
                result.add_error("signup", signup.id, str(e))
                continue

            self._count(result, "signup", outcome)
