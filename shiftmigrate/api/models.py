"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Request Models
class LegacyCredentialsRequest(BaseModel):
    base_url: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class MigrationRunRequest(LegacyCredentialsRequest):
    dry_run: bool = False
    skip_existing_users: bool = True
    skip_existing_shifts: bool = True
    mark_as_migrated: bool = True
    download_photos: bool = True
    user_limit: Optional[int] = Field(default=None, ge=1)
    target_url: Optional[str] = None


# Response Models
class ConnectionTestResponse(BaseModel):
    success: bool
    base_url: str
    message: str


class EntityStatsResponse(BaseModel):
    processed: int
    created: int
    skipped: int


class RecordErrorResponse(BaseModel):
    kind: str
    id: str
    message: str


class ReportResponse(BaseModel):
    stats: Dict[str, EntityStatsResponse]
    errors: List[RecordErrorResponse]
    warnings: List[str]


class MigrationRunResponse(BaseModel):
    id: str
    status: str
    succeeded: bool
    dry_run: bool
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    scrape: Dict[str, Any] = Field(default_factory=dict)
    fatal_error: Optional[str] = None
    shift_time_policy_version: Optional[int] = None
    report: Optional[ReportResponse] = None
