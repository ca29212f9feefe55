"""Target store contract."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..models.target import ShiftDraft, ShiftTypeDraft, SignupDraft, UserDraft


class TargetStore(ABC):
    """
    Find/create capability set of the target application's datastore.

    Every ``find_*`` returns the existing entity id or None. Every
    ``create_*`` returns the new id and raises ``DuplicateEntityError``
    when the store's unique constraint on the dedup key rejects it.
    """

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[str]:
        """Find a user by email, case-insensitively."""
        pass

    @abstractmethod
    def create_user(self, draft: UserDraft) -> str:
        pass

    @abstractmethod
    def find_shift_type_by_name(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def create_shift_type(self, draft: ShiftTypeDraft) -> str:
        pass

    @abstractmethod
    def find_shift_by_window(self, start: datetime, end: datetime, shift_type_id: str) -> Optional[str]:
        """Find a shift with exactly this start, end and shift type."""
        pass

    @abstractmethod
    def create_shift(self, draft: ShiftDraft) -> str:
        pass

    @abstractmethod
    def find_signup_by_user_and_shift(self, user_id: str, shift_id: str) -> Optional[str]:
        pass

    @abstractmethod
    def create_signup(self, draft: SignupDraft) -> str:
        pass

    def validate_connection(self) -> bool:
        """Validate the connection to the target store."""
        return True
