"""Data models for the migration pipeline."""

from .legacy import (
    LegacyUser,
    LegacyEvent,
    LegacySignup,
    ScrapedDataset,
    save_dataset,
    load_dataset,
)
from .target import (
    SignupStatus,
    UserDraft,
    ShiftTypeDraft,
    ShiftDraft,
    SignupDraft,
)
from .migration import (
    ENTITY_KINDS,
    EntityStats,
    MigrationConfig,
    MigrationOptions,
    MigrationRun,
    MigrationStatus,
    RecordError,
    TransformationResult,
)

__all__ = [
    "LegacyUser",
    "LegacyEvent",
    "LegacySignup",
    "ScrapedDataset",
    "save_dataset",
    "load_dataset",
    "SignupStatus",
    "UserDraft",
    "ShiftTypeDraft",
    "ShiftDraft",
    "SignupDraft",
    "ENTITY_KINDS",
    "EntityStats",
    "MigrationConfig",
    "MigrationOptions",
    "MigrationRun",
    "MigrationStatus",
    "RecordError",
    "TransformationResult",
]
