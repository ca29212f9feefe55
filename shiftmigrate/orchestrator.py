"""Migration orchestrator - coordinates a complete legacy migration run."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .errors import AuthError
from .extractors.paginated import PaginatedScraper
from .extractors.photos import PhotoPipeline
from .extractors.session import Credentials, LegacySession, SessionAuthenticator
from .loaders.api_store import APITargetStore
from .loaders.base import TargetStore
from .loaders.importer import IdempotentImporter
from .loaders.memory_store import InMemoryTargetStore
from .models.legacy import ScrapedDataset, load_dataset, save_dataset
from .models.migration import (
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
    TransformationResult,
)
from .services.shift_times import SHIFT_TIME_POLICY_VERSION
from .services.transformer import RecordTransformer

logger = logging.getLogger(__name__)


class MigrationOrchestrator:
    """
    Runs the pipeline as a state machine.

    Idle -> Authenticating -> Scraping -> Transforming -> Importing -> Done,
    or Failed. A failed login ends the run with no report; any other
    unexpected exception ends it with whatever stats were accumulated.
    Per-record problems never fail the run.
    """

    def __init__(
        self,
        config: MigrationConfig,
        store: Optional[TargetStore] = None,
        authenticator: Optional[SessionAuthenticator] = None,
        password_rounds: int = 12,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            store: Target store (defaults to the REST store when a target URL
                is configured, else an in-memory store)
            authenticator: Legacy authenticator
            password_rounds: bcrypt cost factor for migrated credentials
        """
        self.config = config
        self.store = store or self._create_store()
        self.authenticator = authenticator or SessionAuthenticator(
            base_url=config.base_url,
            login_path=config.login_path,
            api_prefix=config.api_prefix,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
        )
        self.password_rounds = password_rounds
        self.run_state: Optional[MigrationRun] = None

    def _create_store(self) -> TargetStore:
        if self.config.target_url:
            return APITargetStore(
                base_url=self.config.target_url,
                api_key=self.config.target_api_key,
                timeout=self.config.request_timeout,
            )
        logger.warning("No target URL configured, importing into an in-memory store")
        return InMemoryTargetStore()

    def authenticate(self) -> LegacySession:
        return self.authenticator.authenticate(Credentials(self.config.email, self.config.password))

    def test_connection(self) -> bool:
        """Log in and read one page of users."""
        try:
            session = self.authenticate()
        except AuthError as e:
            logger.error(f"Authentication failed: {e}")
            return False
        return self.authenticator.test_connection(session)

    def test_target_connection(self) -> bool:
        """Check the target store is reachable."""
        return self.store.validate_connection()

    def scrape(self, session: LegacySession) -> ScrapedDataset:
        scraper = PaginatedScraper(session, page_size=self.config.page_size)
        return scraper.scrape_all(user_limit=self.config.user_limit)

    def run(self) -> MigrationRun:
        """
        Run the complete migration: login, scrape, transform and import.

        Returns:
            MigrationRun with state, timings and the report
        """
        run = self._start_run()

        try:
            logger.info("=== PHASE 1: AUTHENTICATION ===")
            run.status = MigrationStatus.AUTHENTICATING
            session = self.authenticate()
        except AuthError as e:
            logger.error(f"Authentication failed, aborting migration: {e}")
            run.status = MigrationStatus.FAILED
            run.fatal_error = str(e)
            self._finish_run(run)
            return run

        try:
            logger.info("=== PHASE 2: SCRAPING ===")
            run.status = MigrationStatus.SCRAPING
            dataset = self.scrape(session)
            run.scrape = dataset.metadata

            if self.config.dataset_path:
                path = save_dataset(dataset, self.config.dataset_path)
                run.dataset_path = str(path)
                logger.info(f"Saved scraped dataset to {path}")

            self._transform_and_import(run, dataset, session)

        except Exception as e:
            logger.exception(f"Migration failed: {e}")
            run.status = MigrationStatus.FAILED
            run.fatal_error = str(e)

        finally:
            self._finish_run(run)

        return run

    def run_from_dataset(self, dataset: Union[str, Path, ScrapedDataset]) -> MigrationRun:
        """
        Transform and import a previously saved dataset without scraping.

        Photos are not downloaded since there is no legacy session.
        """
        run = self._start_run()

        try:
            if not isinstance(dataset, ScrapedDataset):
                run.dataset_path = str(dataset)
                dataset = load_dataset(dataset)
            run.scrape = dataset.metadata
            self._transform_and_import(run, dataset, None)

        except Exception as e:
            logger.exception(f"Migration failed: {e}")
            run.status = MigrationStatus.FAILED
            run.fatal_error = str(e)

        finally:
            self._finish_run(run)

        return run

    def _start_run(self) -> MigrationRun:
        run = MigrationRun(
            dry_run=self.config.options.dry_run,
            shift_time_policy_version=SHIFT_TIME_POLICY_VERSION,
        )
        run.started_at = datetime.utcnow()
        self.run_state = run
        mode = "DRY RUN" if run.dry_run else "LIVE"
        logger.info(f"Starting migration {run.id} ({mode}) from {self.config.base_url or 'saved dataset'}")
        return run

    def _transform_and_import(
        self,
        run: MigrationRun,
        dataset: ScrapedDataset,
        session: Optional[LegacySession],
    ) -> None:
        options = self.config.options

        # Records are transformed stage by stage during the import, so
        # TRANSFORMING only covers setting up the transformer and pipeline
        logger.info("=== PHASE 3: TRANSFORMATION ===")
        run.status = MigrationStatus.TRANSFORMING
        transformer = RecordTransformer(
            options,
            base_url=self.config.base_url,
            password_rounds=self.password_rounds,
        )
        importer = IdempotentImporter(self.store, transformer, options)

        pipeline = None
        if session is not None and options.download_photos and not options.dry_run:
            pipeline = PhotoPipeline(session)

        logger.info("=== PHASE 4: IMPORT ===")
        run.status = MigrationStatus.IMPORTING
        # Attached before importing so a fatal error still leaves partial stats
        run.result = TransformationResult()
        importer.import_dataset(dataset, photo_pipeline=pipeline, result=run.result)

        run.status = MigrationStatus.DONE
        logger.info(
            f"=== MIGRATION COMPLETED: {len(run.result.errors)} errors, "
            f"{len(run.result.warnings)} warnings ==="
        )

    def _finish_run(self, run: MigrationRun) -> None:
        run.completed_at = datetime.utcnow()
        path = self.config.report_path or (
            Path(self.config.output_dir) / "reports"
            / f"migration_report_{run.completed_at.strftime('%Y%m%d_%H%M%S')}.json"
        )
        try:
            self.save_report(run, path)
        except OSError as e:
            logger.error(f"Could not save migration report to {path}: {e}")

    def save_report(self, run: MigrationRun, path: Union[str, Path]) -> Path:
        """Save the migration report."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(run.to_dict(), f, indent=2, default=str)
        logger.info(f"Saved migration report to {path}")
        return path
