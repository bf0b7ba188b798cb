"""Command line interface for the publisher migration."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .migrator import WebsiteToPublisherMigrator
from .models.migration import MigrationStats
from .services.rollback import MigrationRollbackService
from .services.status_tracker import MigrationStatusTracker
from .services.validator import PublisherMigrationValidator, render_html_report
from .settings import Settings
from .utils import utcnow

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Publisher Migration Tool - Migrate legacy websites into publisher accounts"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    migrate_parser = subparsers.add_parser("migrate", help="Migrate websites to publishers")
    migrate_parser.add_argument("--dry-run", action="store_true", help="Simulate without changes")
    migrate_parser.add_argument("--batch", type=int, default=10, help="Publishers per batch")
    migrate_parser.add_argument("--report-dir", default=".", help="Directory for the JSON report")
    migrate_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Validate legacy data
    validate_parser = subparsers.add_parser("validate", help="Validate the legacy data set")
    validate_parser.add_argument("--html", help="Also write an HTML report to this path")
    validate_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Emergency rollback
    emergency_parser = subparsers.add_parser(
        "emergency-rollback", help="Delete every record created by the migration"
    )
    emergency_parser.add_argument("--yes", action="store_true", help="Confirm the deletion")
    emergency_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "migrate":
        return run_migration(args, settings)
    elif args.command == "validate":
        return run_validation(args, settings)
    elif args.command == "emergency-rollback":
        return run_emergency_rollback(args, settings)
    else:
        parser.print_help()
        return 2


def write_report(stats: MigrationStats, report_dir: str) -> Path:
    """Write the migration stats as migration-report-YYYY-MM-DD.json."""
    directory = Path(report_dir)
    directory.mkdir(parents=True, exist_ok=True)
    filepath = directory / f"migration-report-{utcnow().strftime('%Y-%m-%d')}.json"
    with open(filepath, 'w') as f:
        json.dump(stats.to_dict(), f, indent=2, default=str)
    logger.info(f"Saved migration report to {filepath}")
    return filepath


def run_migration(args, settings: Settings) -> int:
    """Run the website-to-publisher migration."""
    if args.batch < 1:
        logger.error(f"--batch must be positive, got {args.batch}")
        return 2

    store = settings.create_store()
    migrator = WebsiteToPublisherMigrator(store, dry_run=args.dry_run, batch_size=args.batch)
    stats = migrator.migrate()
    write_report(stats, args.report_dir)

    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" if not stats.has_errors else "MIGRATION COMPLETED WITH ERRORS")
    print("=" * 60)
    print(f"Mode: {'DRY RUN' if stats.dry_run else 'LIVE'}")
    print(f"Publishers Created: {stats.shadow_publishers_created}")
    print(f"Offerings Created: {stats.offerings_created}")
    print(f"Relationships Created: {stats.relationships_created}")
    print(f"Errors: {len(stats.errors)}")
    if stats.duration_seconds is not None:
        print(f"Duration: {stats.duration_seconds:.2f} seconds")

    return 1 if stats.has_errors else 0


def run_validation(args, settings: Settings) -> int:
    """Validate the legacy data and print the report."""
    store = settings.create_store()
    report = PublisherMigrationValidator(store).validate_all()

    print("\n=== Validation Report ===")
    print(f"Errors: {report.errors}  Warnings: {report.warnings}  Info: {report.info}")
    for issue in report.issues:
        print(f"  [{issue.type.value.upper()}] {issue.category.value}: {issue.message}")
        if issue.suggestion:
            print(f"      -> {issue.suggestion}")

    if args.html:
        Path(args.html).write_text(render_html_report(report))
        print(f"\nHTML report saved to {args.html}")

    if report.ready_for_migration:
        print("\nReady for migration")
        return 0
    print(f"\nNot ready for migration: {report.errors} errors must be fixed")
    return 1


def run_emergency_rollback(args, settings: Settings) -> int:
    """Delete every record created by the migration."""
    if not args.yes:
        print("Refusing to run without --yes. This deletes all migrated publisher data.")
        return 2

    store = settings.create_store()
    service = MigrationRollbackService(store, MigrationStatusTracker())
    deleted = service.emergency_rollback()

    print("\n=== Emergency Rollback Complete ===")
    for table, count in deleted.items():
        print(f"  {table}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
