"""Command line interface for the legacy shift migration."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .errors import AuthError
from .models.legacy import save_dataset
from .models.migration import MigrationConfig, MigrationRun
from .orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)


def load_config(args) -> MigrationConfig:
    """Build the config from an optional JSON file, the environment and flags."""
    config_data = {}
    if getattr(args, "config", None):
        with open(args.config) as f:
            config_data = json.load(f)

    for key in ("base_url", "email", "password", "target_url", "user_limit"):
        value = getattr(args, key, None)
        if value is not None:
            config_data[key] = value

    config = MigrationConfig.from_dict(config_data)

    if getattr(args, "dry_run", False):
        config.options.dry_run = True
    if getattr(args, "no_photos", False):
        config.options.download_photos = False
    if getattr(args, "dataset_output", None):
        config.dataset_path = args.dataset_output
    if getattr(args, "report", None):
        config.report_path = args.report

    return config


def print_summary(run: MigrationRun) -> None:
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" if run.succeeded else "MIGRATION FAILED")
    print("=" * 60)
    print(f"Status: {run.status.value}{' (dry run)' if run.dry_run else ''}")
    if run.fatal_error:
        print(f"Error: {run.fatal_error}")
    if run.result:
        for kind, stats in run.result.stats.items():
            errors = len(run.result.errors_for(kind))
            print(
                f"{kind:<11} processed {stats.processed:>5}  created {stats.created:>5}  "
                f"skipped {stats.skipped:>5}  errors {errors:>5}"
            )
        print(f"Warnings: {len(run.result.warnings)}")
    if run.duration_seconds:
        print(f"Duration: {run.duration_seconds:.2f} seconds")


def cmd_test_connection(args) -> int:
    """Log in and read one page of users."""
    config = load_config(args)
    orchestrator = MigrationOrchestrator(config)
    if not orchestrator.test_connection():
        print(f"Could not connect to {config.base_url}")
        return 1
    print(f"Connected to {config.base_url}")

    if config.target_url:
        if not orchestrator.test_target_connection():
            print(f"Could not reach target {config.target_url}")
            return 1
        print(f"Reached target {config.target_url}")
    return 0


def cmd_scrape(args) -> int:
    """Scrape the legacy panel into a dataset file without importing."""
    config = load_config(args)
    orchestrator = MigrationOrchestrator(config)
    try:
        session = orchestrator.authenticate()
    except AuthError as e:
        logger.error(f"Authentication failed: {e}")
        return 1

    dataset = orchestrator.scrape(session)
    path = save_dataset(dataset, args.output)
    print(f"Saved {len(dataset.users)} users, {len(dataset.events)} events, "
          f"{len(dataset.signups)} signups to {path}")
    return 0


def cmd_run(args) -> int:
    """Run a full migration."""
    config = load_config(args)
    problems = config.validate()
    if problems:
        for problem in problems:
            print(f"Config error: {problem}", file=sys.stderr)
        return 2

    run = MigrationOrchestrator(config).run()
    print_summary(run)
    return 0 if run.succeeded else 1


def cmd_import(args) -> int:
    """Transform and import a saved dataset."""
    config = load_config(args)
    run = MigrationOrchestrator(config).run_from_dataset(args.dataset)
    print_summary(run)
    return 0 if run.succeeded else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shiftmigrate",
        description="Migrate volunteer shift history out of a legacy admin panel",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to a JSON config file")
    common.add_argument("--base-url", dest="base_url", help="Legacy panel base URL")
    common.add_argument("--email", help="Legacy operator email")
    common.add_argument("--password", help="Legacy operator password")
    common.add_argument("--target-url", dest="target_url", help="Target import API base URL")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("test-connection", parents=[common], help="Check legacy credentials")

    scrape_parser = subparsers.add_parser("scrape", parents=[common], help="Scrape to a dataset file")
    scrape_parser.add_argument("--output", required=True, help="Dataset output path")
    scrape_parser.add_argument("--user-limit", dest="user_limit", type=int, help="Maximum users to scrape")

    run_parser = subparsers.add_parser("run", parents=[common], help="Run a migration")
    run_parser.add_argument("--dry-run", action="store_true", help="Simulate without changes")
    run_parser.add_argument("--dataset-output", help="Save the scraped dataset here")
    run_parser.add_argument("--report", help="Write the JSON report here")
    run_parser.add_argument("--no-photos", action="store_true", help="Store photo URLs instead of images")
    run_parser.add_argument("--user-limit", dest="user_limit", type=int, help="Maximum users to scrape")

    import_parser = subparsers.add_parser("import", parents=[common], help="Import a saved dataset")
    import_parser.add_argument("--dataset", required=True, help="Path to a scraped dataset")
    import_parser.add_argument("--dry-run", action="store_true", help="Simulate without changes")
    import_parser.add_argument("--report", help="Write the JSON report here")

    return parser


COMMANDS = {
    "test-connection": cmd_test_connection,
    "scrape": cmd_scrape,
    "run": cmd_run,
    "import": cmd_import,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
