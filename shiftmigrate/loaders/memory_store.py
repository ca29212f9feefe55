"""In-process target store."""

import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .base import TargetStore
from ..errors import DuplicateEntityError
from ..models.target import ShiftDraft, ShiftTypeDraft, SignupDraft, UserDraft


class InMemoryTargetStore(TargetStore):
    """
    Dictionary-backed store with the same unique constraints as the real one.

    Used for tests and for rehearsing a migration without a target
    application.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.shift_types: Dict[str, Dict[str, Any]] = {}
        self.shifts: Dict[str, Dict[str, Any]] = {}
        self.signups: Dict[str, Dict[str, Any]] = {}

        self._users_by_email: Dict[str, str] = {}
        self._shift_types_by_name: Dict[str, str] = {}
        self._shifts_by_window: Dict[Tuple[datetime, datetime, str], str] = {}
        self._signups_by_pair: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    def _insert(self, index: Dict, key: Any, table: Dict[str, Dict[str, Any]], data: Dict[str, Any], entity: str) -> str:
        with self._lock:
            if key in index:
                raise DuplicateEntityError(f"{entity} {key!r} already exists")
            new_id = self._new_id()
            index[key] = new_id
            table[new_id] = {"id": new_id, **data}
            return new_id

    def find_user_by_email(self, email: str) -> Optional[str]:
        return self._users_by_email.get(email.lower())

    def create_user(self, draft: UserDraft) -> str:
        return self._insert(self._users_by_email, draft.dedup_key, self.users, draft.to_dict(), "User")

    def find_shift_type_by_name(self, name: str) -> Optional[str]:
        return self._shift_types_by_name.get(name)

    def create_shift_type(self, draft: ShiftTypeDraft) -> str:
        return self._insert(self._shift_types_by_name, draft.name, self.shift_types, draft.to_dict(), "Shift type")

    def find_shift_by_window(self, start: datetime, end: datetime, shift_type_id: str) -> Optional[str]:
        return self._shifts_by_window.get((start, end, shift_type_id))

    def create_shift(self, draft: ShiftDraft) -> str:
        key = (draft.start, draft.end, draft.shift_type_id)
        return self._insert(self._shifts_by_window, key, self.shifts, draft.to_dict(), "Shift")

    def find_signup_by_user_and_shift(self, user_id: str, shift_id: str) -> Optional[str]:
        return self._signups_by_pair.get((user_id, shift_id))

    def create_signup(self, draft: SignupDraft) -> str:
        return self._insert(self._signups_by_pair, draft.dedup_key, self.signups, draft.to_dict(), "Signup")

    def counts(self) -> Dict[str, int]:
        return {
            "user": len(self.users),
            "shift_type": len(self.shift_types),
            "shift": len(self.shifts),
            "signup": len(self.signups),
        }
