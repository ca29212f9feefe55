"""Migration execution models."""

import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

ENTITY_KINDS = ("user", "shift_type", "shift", "signup")


class MigrationStatus(str, Enum):
    """State of a migration run."""
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    SCRAPING = "scraping"
    TRANSFORMING = "transforming"
    IMPORTING = "importing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class MigrationOptions:
    """Import policy for a run."""
    dry_run: bool = False
    skip_existing_users: bool = True
    skip_existing_shifts: bool = True
    mark_as_migrated: bool = True
    default_password: Optional[str] = None  # None: random credential per user
    download_photos: bool = True
    photo_workers: int = 4

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "skip_existing_users": self.skip_existing_users,
            "skip_existing_shifts": self.skip_existing_shifts,
            "mark_as_migrated": self.mark_as_migrated,
            "download_photos": self.download_photos,
            "photo_workers": self.photo_workers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationOptions":
        return cls(
            dry_run=data.get("dry_run", False),
            skip_existing_users=data.get("skip_existing_users", True),
            skip_existing_shifts=data.get("skip_existing_shifts", True),
            mark_as_migrated=data.get("mark_as_migrated", True),
            default_password=data.get("default_password"),
            download_photos=data.get("download_photos", True),
            photo_workers=data.get("photo_workers", 4),
        )


@dataclass
class EntityStats:
    """Counters for one entity kind."""
    processed: int = 0
    created: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"processed": self.processed, "created": self.created, "skipped": self.skipped}


@dataclass
class RecordError:
    """A per-record failure. Never discarded."""
    kind: str
    legacy_id: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "id": self.legacy_id, "message": self.message}


@dataclass
class TransformationResult:
    """Outcome of transforming and importing one dataset."""
    stats: Dict[str, EntityStats] = field(
        default_factory=lambda: {kind: EntityStats() for kind in ENTITY_KINDS}
    )
    errors: List[RecordError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, kind: str, legacy_id: Any, message: str) -> None:
        self.errors.append(RecordError(kind=kind, legacy_id=str(legacy_id), message=message))

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def errors_for(self, kind: str) -> List[RecordError]:
        return [e for e in self.errors if e.kind == kind]

    def is_consistent(self) -> bool:
        """Check processed = created + skipped + errors for every kind."""
        for kind, stats in self.stats.items():
            if stats.processed != stats.created + stats.skipped + len(self.errors_for(kind)):
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "stats": {kind: stats.to_dict() for kind, stats in self.stats.items()},
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
        }


@dataclass
class MigrationRun:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.IDLE
    dry_run: bool = False

    # Timing
    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    result: Optional[TransformationResult] = None
    scrape: Dict[str, Any] = field(default_factory=dict)
    fatal_error: Optional[str] = None
    dataset_path: Optional[str] = None
    shift_time_policy_version: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        """True when no fatal failure occurred, regardless of per-record errors."""
        return self.status == MigrationStatus.DONE

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "succeeded": self.succeeded,
            "dry_run": self.dry_run,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "scrape": self.scrape,
            "fatal_error": self.fatal_error,
            "dataset_path": self.dataset_path,
            "shift_time_policy_version": self.shift_time_policy_version,
            "report": self.result.to_dict() if self.result else None,
        }


@dataclass
class MigrationConfig:
    """Configuration for a migration."""
    # Legacy system
    base_url: str = ""
    email: str = ""
    password: str = ""
    login_path: str = "/nova/login"
    api_prefix: str = "/nova-api"
    page_size: int = 100
    user_limit: Optional[int] = None
    request_timeout: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 2.0

    # Target store
    target_url: Optional[str] = None
    target_api_key: Optional[str] = None

    # Output
    output_dir: str = "./data"
    dataset_path: Optional[str] = None
    report_path: Optional[str] = None

    options: MigrationOptions = field(default_factory=MigrationOptions)

    def validate(self) -> List[str]:
        """Return configuration problems that would prevent a run."""
        errors = []
        if not self.base_url:
            errors.append("Legacy base URL is required (base_url or LEGACY_BASE_URL)")
        if not self.email or not self.password:
            errors.append("Legacy credentials are required (LEGACY_EMAIL / LEGACY_PASSWORD)")
        if self.page_size <= 0:
            errors.append("page_size must be positive")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation. Secrets are left out."""
        return {
            "base_url": self.base_url,
            "email": self.email,
            "login_path": self.login_path,
            "api_prefix": self.api_prefix,
            "page_size": self.page_size,
            "user_limit": self.user_limit,
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "backoff_factor": self.backoff_factor,
            "target_url": self.target_url,
            "output_dir": self.output_dir,
            "dataset_path": self.dataset_path,
            "report_path": self.report_path,
            "options": self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation, falling back to the environment."""
        return cls(
            base_url=(data.get("base_url") or os.environ.get("LEGACY_BASE_URL", "")).rstrip("/"),
            email=data.get("email") or os.environ.get("LEGACY_EMAIL", ""),
            password=data.get("password") or os.environ.get("LEGACY_PASSWORD", ""),
            login_path=data.get("login_path", "/nova/login"),
            api_prefix=data.get("api_prefix", "/nova-api"),
            page_size=data.get("page_size", 100),
            user_limit=data.get("user_limit"),
            request_timeout=data.get("request_timeout", 30.0),
            max_retries=data.get("max_retries", 3),
            backoff_factor=data.get("backoff_factor", 2.0),
            target_url=data.get("target_url") or os.environ.get("TARGET_API_URL"),
            target_api_key=data.get("target_api_key") or os.environ.get("TARGET_API_KEY"),
            output_dir=data.get("output_dir", "./data"),
            dataset_path=data.get("dataset_path"),
            report_path=data.get("report_path"),
            options=MigrationOptions.from_dict(data.get("options", {})),
        )
