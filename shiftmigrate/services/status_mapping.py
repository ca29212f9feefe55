"""Legacy signup status lookup.

Statuses arrive either as a numeric code ("1".."9") or as a label. Codes
are checked first, then labels (case-insensitive). Anything unrecognized
is PENDING; the caller decides whether to warn.
"""

from typing import Any, Optional, Tuple

from ..models.target import SignupStatus

NUMERIC_STATUS = {
    "1": SignupStatus.PENDING,  # requested
    "2": SignupStatus.PENDING,  # draft
    "3": SignupStatus.CONFIRMED,
    "4": SignupStatus.WAITLISTED,
    "5": SignupStatus.CONFIRMED,  # attended
    "6": SignupStatus.CANCELED,
    "7": SignupStatus.NOT_NEEDED,
    "8": SignupStatus.UNAVAILABLE,
    "9": SignupStatus.NO_SHOW,
}

LABEL_STATUS = {
    "requested": SignupStatus.PENDING,
    "pending": SignupStatus.PENDING,
    "draft": SignupStatus.PENDING,
    "confirmed": SignupStatus.CONFIRMED,
    "approved": SignupStatus.CONFIRMED,
    "attended": SignupStatus.CONFIRMED,
    "waitlist": SignupStatus.WAITLISTED,
    "waitlisted": SignupStatus.WAITLISTED,
    "cancelled": SignupStatus.CANCELED,
    "canceled": SignupStatus.CANCELED,
    "not needed": SignupStatus.NOT_NEEDED,
    "not_needed": SignupStatus.NOT_NEEDED,
    "unavailable": SignupStatus.UNAVAILABLE,
    "no show": SignupStatus.NO_SHOW,
    "no_show": SignupStatus.NO_SHOW,
    "no-show": SignupStatus.NO_SHOW,
}


def _code(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def map_status(*candidates: Any) -> Tuple[SignupStatus, bool]:
    """
    Map the first recognizable candidate to a SignupStatus.

    Args:
        candidates: Raw status values in priority order (code, then label)

    Returns:
        (status, matched); matched is False when falling back to PENDING
    """
    codes = [_code(c) for c in candidates]

    for code in codes:
        if code and code in NUMERIC_STATUS:
            return NUMERIC_STATUS[code], True

    for code in codes:
        if code:
            status = LABEL_STATUS.get(" ".join(code.lower().split()))
            if status is not None:
                return status, True

    return SignupStatus.PENDING, False
