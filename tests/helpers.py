"""Test helpers: fake HTTP responses, legacy records and images."""

from __future__ import annotations

import io
import json
from typing import Any, Dict, Optional
from unittest.mock import Mock

from PIL import Image
from requests.structures import CaseInsensitiveDict


BASE_URL = "https://legacy.example.org"


def make_response(
    status: int = 200,
    json_data: Any = None,
    text: Optional[str] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
) -> Mock:
    """Build a requests.Response-shaped mock."""
    response = Mock()
    response.status_code = status
    response.headers = CaseInsensitiveDict(headers or {})
    response.cookies = dict(cookies or {})
    if json_data is not None:
        response.text = json.dumps(json_data)
        response.json.return_value = json_data
    else:
        response.text = text or ""
        response.json.side_effect = ValueError("No JSON object could be decoded")
    response.content = content if content is not None else response.text.encode()
    return response


def make_jpeg(width: int = 800, height: int = 600, color=(200, 30, 30), fmt: str = "JPEG") -> bytes:
    buffer = io.BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def field_list_user(user_id: int, email: str, first: str = "Ada", last: str = "Lovelace", **extra: Any) -> Dict[str, Any]:
    fields = [
        {"attribute": "email", "value": email},
        {"attribute": "first_name", "value": first},
        {"attribute": "last_name", "value": last},
        {"attribute": "phone", "value": extra.get("phone", "021 555 0100")},
        {"attribute": "approved_at", "value": extra.get("approved_at", "2023-04-01 10:00:00")},
    ]
    if "avatar" in extra:
        fields.append({"attribute": "avatar", "value": extra["avatar"]})
    return {"id": {"value": user_id}, "fields": fields}


def field_list_signup(signup_id: int, user_id: int, event_id: int, status: Any = 3, position: str = "Kitchen Prep") -> Dict[str, Any]:
    return {
        "id": {"value": signup_id},
        "statusId": status,
        "fields": [
            {"attribute": "user", "belongsToId": user_id, "value": f"User {user_id}"},
            {"attribute": "event", "belongsToId": event_id, "value": f"Event {event_id}"},
            {"attribute": "position", "value": position},
        ],
    }


