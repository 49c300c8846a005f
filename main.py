#!/usr/bin/env python3
"""
flomosync - Flomo note synchronization

Main entry point. Opens the block database, picks a note source and runs
an incremental or full sync of Flomo notes into the journal.
"""

import logging
import sys
import argparse
from datetime import date

from flomosync import __version__
from flomosync.config import ConfigManager, config
from flomosync.database import BlockDatabase
from flomosync.models import SyncSettings, SyncStatus
from flomosync.notify import Notifier, setup_l10n
from flomosync.sources import FlomoSnapshotSource, MockSource
from flomosync.state import StateStore
from flomosync.sync import SyncOrchestrator


def setup_logging(cfg: ConfigManager):
    """Configure logging for the application."""
    level = getattr(logging, cfg.get("logging.level", "INFO").upper())
    format_str = cfg.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = cfg.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def build_source(source_type: str, cfg: ConfigManager, snapshot_path: str | None = None):
    """
    Create the note source.

    Args:
        source_type: 'flomo' or 'mock'
        cfg: Configuration to read source settings from
        snapshot_path: Overrides the configured snapshot path

    Returns:
        The source adapter
    """
    if source_type == "mock":
        return MockSource()
    if source_type == "flomo":
        return FlomoSnapshotSource(
            snapshot_path or cfg.snapshot_path,
            ready_delay=cfg.source_ready_delay,
            timeout=cfg.source_timeout,
            login_url=cfg.login_url
        )
    raise ValueError(f"Unknown source type: {source_type}")


def run_sync(cfg: ConfigManager, source_type: str, full_sync: bool = False,
             snapshot_path: str | None = None, journal_days=()) -> SyncStatus:
    """
    Execute one sync run.

    Args:
        cfg: Configuration
        source_type: Type of source to use ('flomo' or 'mock')
        full_sync: Ignore the saved cursor
        snapshot_path: Path to the Flomo snapshot (flomo source only)
        journal_days: Days whose journal blocks are created before syncing

    Returns:
        Status of the run
    """
    source = build_source(source_type, cfg, snapshot_path)
    settings = SyncSettings.from_config(cfg)

    with BlockDatabase(cfg.database_filename, cfg.assets_directory) as db:
        db.initialize_database()
        logging.info("Database initialized")

        for day in journal_days:
            db.create_journal_block(day)

        orchestrator = SyncOrchestrator(
            store=db,
            source=source,
            state_store=StateStore(cfg.state_filename),
            settings=settings,
            plugin_name=cfg.plugin_name,
            notifier=Notifier()
        )
        result = orchestrator.sync(full_sync=full_sync)

    logging.info(
        f"Sync finished: {result.status.value}, {result.notes_synced} notes, "
        f"cursor {result.cursor_before} -> {result.cursor_after}"
    )
    return result.status


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="flomosync - Import Flomo notes into journal inboxes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                   # Incremental sync from the configured snapshot
  python main.py --full-sync                       # Re-import everything after the configured date
  python main.py --source mock --create-journal 2024-05-22   # Try it out with sample notes
        """
    )

    parser.add_argument(
        "--source",
        choices=["flomo", "mock"],
        default="flomo",
        help="Note source to use (default: flomo)"
    )

    parser.add_argument(
        "--full-sync",
        action="store_true",
        help="Ignore the saved cursor and sync all notes after the configured date"
    )

    parser.add_argument(
        "--snapshot",
        type=str,
        help="Path to the Flomo local storage snapshot (overrides config)"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to the configuration file (default: config.yaml)"
    )

    parser.add_argument(
        "--create-journal",
        type=date.fromisoformat,
        action="append",
        default=[],
        metavar="YYYY-MM-DD",
        help="Create the journal block of a day before syncing (repeatable)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"flomosync {__version__}"
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)
    cfg = ConfigManager(args.config) if args.config else config
    setup_logging(cfg)
    setup_l10n(cfg.locale)

    logging.info("flomosync - Flomo note synchronization")

    try:
        status = run_sync(
            cfg,
            args.source,
            full_sync=args.full_sync,
            snapshot_path=args.snapshot,
            journal_days=args.create_journal
        )
    except KeyboardInterrupt:
        logging.info("Sync interrupted by user")
        print("\nSync interrupted.")
        sys.exit(1)

    if status == SyncStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
