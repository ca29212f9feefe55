"""Records scraped from the legacy admin panel.

The legacy API returns resources in two shapes: a "field list" envelope
(``{"id": {"value": 1}, "fields": [{"attribute": ..., "value": ...}]}``) and
an older flat object. Both are normalized here, once, by the ``from_raw``
constructors so the rest of the pipeline only sees one canonical shape.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

PHOTO_URL_KEYS = ("__original__", "detailView", "form", "preview")


def _record_id(raw: Dict[str, Any]) -> str:
    """Get the legacy id from either ``{"id": 5}`` or ``{"id": {"value": 5}}``."""
    value = raw.get("id")
    if isinstance(value, dict):
        value = value.get("value")
    return "" if value is None else str(value)


def _fields(raw: Dict[str, Any]) -> Optional[Dict[str, Dict[str, Any]]]:
    """Index a field-list record by attribute, or None for flat records."""
    fields = raw.get("fields")
    if not isinstance(fields, list):
        return None
    return {f.get("attribute"): f for f in fields if isinstance(f, dict)}


def _value(fields: Dict[str, Dict[str, Any]], attribute: str) -> Any:
    entry = fields.get(attribute)
    return entry.get("value") if entry else None


def _belongs_to(fields: Dict[str, Dict[str, Any]], attribute: str) -> Optional[str]:
    entry = fields.get(attribute)
    if not entry:
        return None
    value = entry.get("belongsToId")
    return None if value is None else str(value)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _media_url(value: Any) -> Optional[str]:
    """Pull a URL out of a media-library avatar value (list of media items)."""
    if isinstance(value, str):
        return _text(value)
    if isinstance(value, list) and value:
        item = value[0]
        if isinstance(item, dict):
            urls = item.get("__media_urls__") or {}
            for key in PHOTO_URL_KEYS:
                if urls.get(key):
                    return urls[key]
    return None


@dataclass
class LegacyUser:
    """A user record from the legacy panel."""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    approved_at: Optional[str] = None
    photo_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "LegacyUser":
        """Build from either a field-list resource or a flat object."""
        fields = _fields(raw)
        if fields is not None:
            photo = _media_url(_value(fields, "avatar")) or _media_url(_value(fields, "profile_photo"))
            return cls(
                id=_record_id(raw),
                email=_text(_value(fields, "email")),
                first_name=_text(_value(fields, "first_name")),
                last_name=_text(_value(fields, "last_name")),
                phone=_text(_value(fields, "phone")),
                approved_at=_text(_value(fields, "approved_at")),
                photo_url=photo,
                raw=raw,
            )

        photo = raw.get("profile_photo") or raw.get("photo") or raw.get("avatar")
        return cls(
            id=_record_id(raw),
            email=_text(raw.get("email")),
            first_name=_text(raw.get("first_name")),
            last_name=_text(raw.get("last_name")),
            phone=_text(raw.get("phone")),
            approved_at=_text(raw.get("approved_at")),
            photo_url=_media_url(photo),
            raw=raw,
        )


@dataclass
class LegacyEvent:
    """An event record. The name often encodes the date and site."""
    id: str
    name: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "LegacyEvent":
        """Build from either a field-list resource or a flat object."""
        fields = _fields(raw)
        source: Dict[str, Any]
        if fields is not None:
            source = {name: _value(fields, name) for name in ("name", "date", "location", "capacity")}
            source["created_at"] = raw.get("created_at") or _value(fields, "created_at")
            source["updated_at"] = raw.get("updated_at") or _value(fields, "updated_at")
        else:
            source = raw

        return cls(
            id=_record_id(raw),
            name=_text(source.get("name")),
            date=_text(source.get("date")),
            location=_text(source.get("location")),
            capacity=_to_int(source.get("capacity")),
            created_at=_text(source.get("created_at")),
            updated_at=_text(source.get("updated_at")),
            raw=raw,
        )


@dataclass
class LegacySignup:
    """An event application linking a legacy user to a legacy event."""
    id: str
    user_id: Optional[str] = None
    event_id: Optional[str] = None
    status: Optional[str] = None  # numeric code ("1".."9") or label
    status_label: Optional[str] = None
    position: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    canceled_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "LegacySignup":
        """Build from either a field-list resource or a flat object."""
        fields = _fields(raw)
        if fields is not None:
            user_id = _belongs_to(fields, "user")
            event_id = _belongs_to(fields, "event")
            status = raw.get("statusId")
            if status is None:
                status = _belongs_to(fields, "status") or _value(fields, "status")
            label = raw.get("statusName") or raw.get("status")
            position = _value(fields, "position")
            canceled_at = raw.get("canceled_at") or _value(fields, "canceled_at")
        else:
            user_id = raw.get("user_id")
            event_id = raw.get("event_id")
            status = raw.get("status_id", raw.get("statusId"))
            label = raw.get("status") or raw.get("statusName")
            position = raw.get("position")
            canceled_at = raw.get("canceled_at")

        if status is None:
            status, label = label, None

        return cls(
            id=_record_id(raw),
            user_id=_text(user_id),
            event_id=_text(event_id),
            status=_text(status),
            status_label=_text(label),
            position=_text(position),
            created_at=_text(raw.get("created_at")),
            updated_at=_text(raw.get("updated_at")),
            canceled_at=_text(canceled_at),
            raw=raw,
        )


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


@dataclass
class ScrapedDataset:
    """Raw extraction result: three independently paginated collections."""
    users: List[LegacyUser] = field(default_factory=list)
    events: List[LegacyEvent] = field(default_factory=list)
    signups: List[LegacySignup] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def signups_by_event(self) -> Dict[str, List[LegacySignup]]:
        """Group signups by legacy event id, preserving scrape order."""
        grouped: Dict[str, List[LegacySignup]] = {}
        for signup in self.signups:
            if signup.event_id:
                grouped.setdefault(signup.event_id, []).append(signup)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "users": [asdict(u) for u in self.users],
            "events": [asdict(e) for e in self.events],
            "signups": [asdict(s) for s in self.signups],
            "metadata": {
                **self.metadata,
                "total_users": len(self.users),
                "total_events": len(self.events),
                "total_signups": len(self.signups),
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapedDataset":
        """Create from dictionary representation."""
        return cls(
            users=[LegacyUser(**u) for u in data.get("users", [])],
            events=[LegacyEvent(**e) for e in data.get("events", [])],
            signups=[LegacySignup(**s) for s in data.get("signups", [])],
            metadata=data.get("metadata", {}),
        )


def save_dataset(dataset: ScrapedDataset, path: Union[str, Path]) -> Path:
    """Persist a scraped dataset so transform/import can re-run without scraping."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = dataset.to_dict()
    payload["metadata"].setdefault("saved_at", datetime.utcnow().isoformat())
    with open(path, "w") as f:
        json.dump(payload, f, indent=2, default=str)
    return path


def load_dataset(path: Union[str, Path]) -> ScrapedDataset:
    """Load a dataset written by ``save_dataset``."""
    with open(path) as f:
        return ScrapedDataset.from_dict(json.load(f))
