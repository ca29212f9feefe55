"""Transformation of legacy records into target drafts."""

import re
import logging
import secrets
from typing import Callable, List, Optional, Sequence, Tuple
from datetime import datetime, timezone

import bcrypt
from dateutil import parser as date_parser

from .shift_times import shift_window
from .status_mapping import map_status
from ..errors import TransformError
from ..extractors.photos import resolve_photo_url
from ..models.legacy import LegacyEvent, LegacySignup, LegacyUser
from ..models.migration import MigrationOptions
from ..models.target import ShiftDraft, ShiftTypeDraft, SignupDraft, SignupStatus, UserDraft

logger = logging.getLogger(__name__)

DAY_MONTH_PATTERN = re.compile(r"(\d+)(?:st|nd|rd|th)\s+(\w+)", re.IGNORECASE)

# (substring in the event name, shift type name, site)
CITY_HINTS: Tuple[Tuple[str, str, str], ...] = (
    ("WGTN", "Wellington Event", "Wellington"),
    ("AKL", "Auckland Event", "Auckland"),
)

DEFAULT_SHIFT_TYPE = "General Volunteering"
DEFAULT_LOCATION = "Unknown Location"
DEFAULT_CAPACITY = 10


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RecordTransformer:
    """
    Maps canonical legacy records to target drafts.

    Pure apart from password hashing; photo download is left to the importer.
    Non-fatal oddities (bad dates, unknown statuses) are collected in
    ``warnings`` instead of failing the record.
    """

    def __init__(
        self,
        options: Optional[MigrationOptions] = None,
        base_url: str = "",
        password_rounds: int = 12,
        now: Optional[Callable[[], datetime]] = None,
        reference_year: Optional[int] = None,
    ):
        """
        Initialize the transformer.

        Args:
            options: Import policy (migrated flag, password policy)
            base_url: Legacy base URL for resolving relative photo paths
            password_rounds: bcrypt cost factor
            now: Clock, injectable for tests
            reference_year: Year for event names that carry only day and month
        """
        self.options = options or MigrationOptions()
        self.base_url = base_url.rstrip("/")
        self.password_rounds = password_rounds
        self._now = now or datetime.utcnow
        self.reference_year = reference_year
        self.warnings: List[str] = []

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def drain_warnings(self) -> List[str]:
        """Return and clear collected warnings."""
        warnings, self.warnings = self.warnings, []
        return warnings

    def parse_timestamp(self, value: Optional[str]) -> Optional[datetime]:
        """Parse a legacy timestamp, or None if absent or unparsable."""
        if not value:
            return None
        try:
            return _naive_utc(date_parser.parse(value))
        except (ValueError, OverflowError, TypeError):
            return None

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.password_rounds)).decode("ascii")

    # ------------------------------------------------------------------ users

    def transform_user(self, user: LegacyUser) -> UserDraft:
        """
        Map a legacy user to a draft.

        Raises:
            TransformError: if the user has no email
        """
        if not user.email:
            raise TransformError(f"User {user.id} has no email")

        email = user.email.strip().lower()
        name = " ".join(part for part in (user.first_name, user.last_name) if part) or email

        created_at = self.parse_timestamp(user.approved_at)
        if created_at is None:
            if user.approved_at:
                self._warn(f"Invalid approved_at for {email}: {user.approved_at!r}, using current time")
            else:
                logger.debug(f"No approved_at for {email}, using current time")
            created_at = self._now()

        # Migrated users reset this through the invitation flow
        password = self.options.default_password or secrets.token_hex(32)

        photo_url = resolve_photo_url(user.photo_url, self.base_url) if user.photo_url else None

        return UserDraft(
            email=email,
            name=name,
            hashed_password=self.hash_password(password),
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            profile_photo_url=photo_url,
            profile_completed=False,
            is_migrated=self.options.mark_as_migrated,
            created_at=created_at,
            updated_at=self._now(),
            legacy_id=user.id,
            photo_source=photo_url,
        )

    # ----------------------------------------------------------------- events

    @staticmethod
    def _city_hint(name: Optional[str]) -> Optional[Tuple[str, str, str]]:
        if not name:
            return None
        for hint in CITY_HINTS:
            if hint[0] in name:
                return hint
        return None

    def shift_type_name(self, event: LegacyEvent, signups: Sequence[LegacySignup]) -> str:
        """First signup's position, else a city hint from the event name, else the default."""
        for signup in signups[:1]:
            if signup.position:
                return signup.position
        hint = self._city_hint(event.name)
        if hint:
            return hint[1]
        return DEFAULT_SHIFT_TYPE

    def transform_shift_type(self, name: str) -> ShiftTypeDraft:
        return ShiftTypeDraft(name=name, description=f"Migrated from legacy system - {name}")

    def infer_location(self, event: LegacyEvent) -> str:
        if event.location:
            return event.location
        hint = self._city_hint(event.name)
        if hint:
            return hint[2]
        return DEFAULT_LOCATION

    def event_date(self, event: LegacyEvent) -> datetime:
        """Resolve the calendar day of an event."""
        if event.date:
            # The event's own calendar day, whatever its offset
            try:
                return date_parser.parse(event.date).replace(tzinfo=None)
            except (ValueError, OverflowError, TypeError):
                self._warn(f"Invalid date for event {event.id}: {event.date!r}")

        match = DAY_MONTH_PATTERN.search(event.name or "")
        if match:
            day, month = match.groups()
            year = self.reference_year or self._now().year
            try:
                return date_parser.parse(f"{day} {month} {year}", dayfirst=True)
            except (ValueError, OverflowError):
                self._warn(f"Could not parse date from event name {event.name!r}")

        self._warn(f"No date found for event {event.id} ({event.name!r}), using current date")
        return self._now()

    def transform_event(self, event: LegacyEvent, signups: Sequence[LegacySignup]) -> ShiftDraft:
        """Map a legacy event and its signups to a shift draft."""
        type_name = self.shift_type_name(event, signups)
        start, end = shift_window(type_name).on(self.event_date(event))

        notes = [f"Event: {event.name}"] if event.name else []
        notes.append(f"Legacy ID: {event.id}")

        return ShiftDraft(
            shift_type_name=type_name,
            start=start,
            end=end,
            location=self.infer_location(event),
            capacity=event.capacity or DEFAULT_CAPACITY,
            notes="\n".join(notes),
            created_at=self.parse_timestamp(event.created_at) or self._now(),
            updated_at=self.parse_timestamp(event.updated_at) or self._now(),
            legacy_id=event.id,
        )

    # ---------------------------------------------------------------- signups

    def transform_signup(self, signup: LegacySignup, user_id: str, shift_id: str) -> SignupDraft:
        """Map a legacy signup with resolved target ids. Never fails on status."""
        status, matched = map_status(signup.status, signup.status_label)
        if not matched:
            self._warn(
                f"Unknown status for signup {signup.id}: {signup.status!r}/{signup.status_label!r}, "
                f"using {SignupStatus.PENDING.value}"
            )

        canceled_at = self.parse_timestamp(signup.canceled_at)
        if status == SignupStatus.CANCELED and canceled_at is None:
            canceled_at = self.parse_timestamp(signup.updated_at)

        return SignupDraft(
            user_id=user_id,
            shift_id=shift_id,
            status=status,
            canceled_at=canceled_at,
            created_at=self.parse_timestamp(signup.created_at) or self._now(),
            updated_at=self.parse_timestamp(signup.updated_at) or self._now(),
            legacy_id=signup.id,
        )
