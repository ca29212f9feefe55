"""Drafts for target-store entities.

Drafts are transformed, not-yet-persisted candidates. The importer checks
each draft's dedup key against the store before creating it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SignupStatus(str, Enum):
    """Signup status in the target application."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELED = "CANCELED"
    NOT_NEEDED = "NOT_NEEDED"
    UNAVAILABLE = "UNAVAILABLE"
    NO_SHOW = "NO_SHOW"


@dataclass
class UserDraft:
    """A user to create, keyed by lower-cased email."""
    email: str
    name: str
    hashed_password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    profile_photo_url: Optional[str] = None
    profile_completed: bool = False
    is_migrated: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    legacy_id: Optional[str] = None
    photo_source: Optional[str] = None  # absolute legacy URL, before download

    @property
    def dedup_key(self) -> str:
        return self.email.lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "email": self.email,
            "name": self.name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "profilePhotoUrl": self.profile_photo_url,
            "hashedPassword": self.hashed_password,
            "profileCompleted": self.profile_completed,
            "isMigrated": self.is_migrated,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class ShiftTypeDraft:
    """A shift type to create, keyed by exact name."""
    name: str
    description: str = ""

    @property
    def dedup_key(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass
class ShiftDraft:
    """A shift to create, keyed by (start, end, shift type name)."""
    shift_type_name: str
    start: datetime
    end: datetime
    location: str = "Unknown Location"
    capacity: int = 10
    notes: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    legacy_id: Optional[str] = None
    shift_type_id: Optional[str] = None  # resolved by the importer

    @property
    def dedup_key(self) -> Tuple[datetime, datetime, str]:
        return (self.start, self.end, self.shift_type_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "shiftTypeId": self.shift_type_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "location": self.location,
            "capacity": self.capacity,
            "notes": self.notes,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class SignupDraft:
    """A signup to create, keyed by (user id, shift id)."""
    user_id: str
    shift_id: str
    status: SignupStatus = SignupStatus.PENDING
    canceled_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    legacy_id: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[str, str]:
        return (self.user_id, self.shift_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "userId": self.user_id,
            "shiftId": self.shift_id,
            "status": self.status.value,
            "canceledAt": self.canceled_at.isoformat() if self.canceled_at else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
