"""Result types shared by the legacy extractors."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import PageFetchError


@dataclass
class ScrapeResult:
    """Result of scraping one paginated resource."""
    resource: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    error: Optional[PageFetchError] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def complete(self) -> bool:
        """True when the resource was read to exhaustion."""
        return self.error is None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the records themselves."""
        return {
            "resource": self.resource,
            "total": len(self.records),
            "pages": self.pages,
            "complete": self.complete,
            "error": self.error.to_dict() if self.error else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
