"""Migration trigger endpoints."""

import logging
from fastapi import APIRouter, HTTPException

from ..models import (
    ConnectionTestResponse,
    LegacyCredentialsRequest,
    MigrationRunRequest,
    MigrationRunResponse,
)
from ...models.migration import MigrationConfig
from ...orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def build_config(data: LegacyCredentialsRequest) -> MigrationConfig:
    """Request values win; anything missing falls back to the environment."""
    config_data = data.model_dump(exclude_none=True)
    options = {
        key: config_data.pop(key)
        for key in ("dry_run", "skip_existing_users", "skip_existing_shifts", "mark_as_migrated", "download_photos")
        if key in config_data
    }
    config_data["options"] = options
    return MigrationConfig.from_dict(config_data)


def _require_valid(config: MigrationConfig) -> None:
    problems = config.validate()
    if problems:
        raise HTTPException(status_code=400, detail="; ".join(problems))


@router.post("/test-connection", response_model=ConnectionTestResponse)
def test_connection(data: LegacyCredentialsRequest):
    """Log into the legacy panel and read one page of users."""
    config = build_config(data)
    _require_valid(config)

    success = MigrationOrchestrator(config).test_connection()
    return ConnectionTestResponse(
        success=success,
        base_url=config.base_url,
        message="Connected to legacy system" if success else "Could not connect to legacy system",
    )


@router.post("/run", response_model=MigrationRunResponse)
def run_migration(data: MigrationRunRequest):
    """Run a migration synchronously and return its report."""
    config = build_config(data)
    _require_valid(config)

    logger.info(f"Starting migration from {config.base_url} (dry_run={config.options.dry_run})")
    run = MigrationOrchestrator(config).run()
    return run.to_dict()
