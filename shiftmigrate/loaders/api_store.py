"""REST target store for the target application's import API."""

import time
import logging
import requests
from typing import Any, Dict, List, Optional
from datetime import datetime

from .base import TargetStore
from ..errors import DuplicateEntityError
from ..models.target import ShiftDraft, ShiftTypeDraft, SignupDraft, UserDraft

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = {
    "user": "/users",
    "shift_type": "/shift-types",
    "shift": "/shifts",
    "signup": "/signups",
}


class APITargetStore(TargetStore):
    """
    Target store backed by a REST API.

    Lookups are ``GET <endpoint>?<filter>`` returning a list (bare or under
    ``data``); creates are ``POST <endpoint>`` returning the new entity.
    A 409 on create is the API's unique-constraint signal.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        rate_limit: float = 10.0,
        endpoints: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the store.

        Args:
            base_url: Base URL of the target API
            api_key: Bearer token
            timeout: Per-request timeout in seconds
            rate_limit: Max requests per second (0 disables)
            endpoints: Mapping of entity kind -> endpoint path
            session: Custom requests session
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.endpoints = {**DEFAULT_ENDPOINTS, **(endpoints or {})}
        self._last_request_time = 0.0
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()
        if self.api_key:
            session.headers["Authorization"] = f"Bearer {self.api_key}"
        session.headers["Content-Type"] = "application/json"
        session.headers["Accept"] = "application/json"
        return session

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        if self.rate_limit > 0:
            elapsed = time.time() - self._last_request_time
            wait_time = (1.0 / self.rate_limit) - elapsed
            if wait_time > 0:
                time.sleep(wait_time)
        self._last_request_time = time.time()

    def _url(self, kind: str) -> str:
        return f"{self.base_url}{self.endpoints[kind]}"

    @staticmethod
    def _items(payload: Any) -> List[Dict[str, Any]]:
        if isinstance(payload, dict):
            payload = payload.get("data", [])
        return payload if isinstance(payload, list) else []

    def _find(self, kind: str, params: Dict[str, Any]) -> Optional[str]:
        self._rate_limit_wait()
        response = self._session.get(self._url(kind), params=params, timeout=self.timeout)
        response.raise_for_status()
        items = self._items(response.json() if response.text else [])
        if not items:
            return None
        if not isinstance(items[0], dict):
            raise ValueError(f"Unexpected {kind} lookup item: {items[0]!r}")
        target_id = items[0].get("id")
        return str(target_id) if target_id not in (None, "") else None

    def _create(self, kind: str, data: Dict[str, Any]) -> str:
        self._rate_limit_wait()
        response = self._session.post(self._url(kind), json=data, timeout=self.timeout)

        if response.status_code == 409:
            raise DuplicateEntityError(f"{kind} already exists: {response.text[:200]}")

        response.raise_for_status()
        response_data = response.json() if response.text else {}
        target_id = response_data.get("id") or (response_data.get("data") or {}).get("id")
        if not target_id:
            raise ValueError(f"Create {kind} returned no id")

        logger.debug(f"Created {kind} {target_id}")
        return str(target_id)

    def find_user_by_email(self, email: str) -> Optional[str]:
        return self._find("user", {"email": email.lower()})

    def create_user(self, draft: UserDraft) -> str:
        return self._create("user", draft.to_dict())

    def find_shift_type_by_name(self, name: str) -> Optional[str]:
        return self._find("shift_type", {"name": name})

    def create_shift_type(self, draft: ShiftTypeDraft) -> str:
        return self._create("shift_type", draft.to_dict())

    def find_shift_by_window(self, start: datetime, end: datetime, shift_type_id: str) -> Optional[str]:
        return self._find(
            "shift",
            {"start": start.isoformat(), "end": end.isoformat(), "shiftTypeId": shift_type_id},
        )

    def create_shift(self, draft: ShiftDraft) -> str:
        return self._create("shift", draft.to_dict())

    def find_signup_by_user_and_shift(self, user_id: str, shift_id: str) -> Optional[str]:
        return self._find("signup", {"userId": user_id, "shiftId": shift_id})

    def create_signup(self, draft: SignupDraft) -> str:
        return self._create("signup", draft.to_dict())

    def validate_connection(self) -> bool:
        """Validate connection to the API."""
        try:
            self._rate_limit_wait()
            response = self._session.get(self.base_url, timeout=self.timeout)
            return response.status_code < 500
        except requests.RequestException as e:
            logger.error(f"Target API connection validation failed: {e}")
            return False
