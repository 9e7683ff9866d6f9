"""Command-line interface for bank-sync."""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from bank_sync import __version__
from bank_sync.config import Config, ConfigError, load_config
from bank_sync.models.raw import NormalizationError
from bank_sync.pipeline import PipelineStage, SyncPipeline, SyncResult
from bank_sync.store.base import StoreError
from bank_sync.store.sqlite_store import SQLiteStore
from bank_sync.upstream.base import LoginFailedError, UpstreamError, VendorDownError
from bank_sync.upstream.weboob import WeboobClient
from bank_sync.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_LOGIN_FAILED = 2
EXIT_VENDOR_DOWN = 3
EXIT_SYNC_ERROR = 4

STAGE_MESSAGES = {
    PipelineStage.AUTHENTICATED: "Fetching bank accounts...",
    PipelineStage.ACCOUNTS_FETCHED: "Normalizing bank accounts...",
    PipelineStage.ACCOUNTS_NORMALIZED: "Fetching transactions...",
    PipelineStage.TRANSACTIONS_NORMALIZED: "Saving accounts and transactions...",
    PipelineStage.RECONCILED: "Merging balance histories...",
    PipelineStage.BALANCES_MERGED: "Saving balance histories...",
}


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="bank-sync",
        description=(
            "Import bank accounts and transactions from the upstream bank API "
            "and record today's balances"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Credentials are read from BANK_SYNC_LOGIN and BANK_SYNC_PASSWORD
(a .env file in the working directory is loaded first).

Examples:
  %(prog)s
  %(prog)s --config-dir ./config --db ./data/bank.db
  %(prog)s --dry-run -v
  %(prog)s --validate-only
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config-dir",
        type=Path,
        default=Path("config"),
        help="Base config directory (default: ./config)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: <config-dir>/settings.yaml)",
    )
    parser.add_argument(
        "--labels",
        type=Path,
        default=None,
        help="Path to labels.yaml (default: <config-dir>/labels.yaml)",
    )

    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (overrides store.path)",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Upstream API base URL (overrides upstream.base_url)",
    )
    parser.add_argument("--login", default=None, help="Upstream login")
    parser.add_argument("--password", default=None, help="Upstream password")

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Strict mode: abort on unparsable amounts or dates instead of defaulting them",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and normalize but do not write to the store",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Validate configuration files only",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (-v, -vv)",
    )

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Without -v flags the level comes from logging.level in settings.yaml.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def build_config(args: argparse.Namespace) -> Config:
    """Load configuration and apply command-line overrides.

    Raises:
        ConfigError: If the configuration is invalid.
    """
    config = load_config(
        settings_path=args.config,
        labels_path=args.labels,
        config_dir=args.config_dir,
    )

    if args.db:
        config.store.path = args.db
    if args.base_url:
        config.upstream.base_url = args.base_url
    if args.login:
        config.upstream.login = args.login
    if args.password:
        config.upstream.password = args.password
    if args.strict:
        config.sync.strict = True

    config.validate()
    return config


def validate_config(config: Config) -> int:
    """Print the effective configuration.

    Returns:
        Exit code.
    """
    console.print("[bold]Configuration is valid[/bold]\n")
    console.print(f"Institution: {config.institution_label}")
    console.print(f"Upstream: {config.upstream.base_url} (backend {config.upstream.backend})")
    console.print(f"Credentials: {'set' if config.upstream.login and config.upstream.password else '[yellow]missing[/yellow]'}")
    console.print(f"Store: {config.store.path}")
    console.print(f"Account rules: {len(config.account_rules)}")
    console.print(f"Transaction rules: {len(config.transaction_rules)}")
    console.print(f"Strict mode: {config.sync.strict}")
    return EXIT_OK


def display_summary(result: SyncResult) -> None:
    """Display a summary of the run.

    Args:
        result: Pipeline result.
    """
    table = Table(title="Synchronization Summary")
    table.add_column("Account", style="cyan")
    table.add_column("Type")
    table.add_column("Balance", justify="right")
    table.add_column("Transactions", justify="right")

    counts: dict[str, int] = {}
    for txn in result.transactions:
        counts[txn.vendor_account_id] = counts.get(txn.vendor_account_id, 0) + 1

    for account in result.accounts:
        table.add_row(
            account.label or account.vendor_id,
            account.type,
            f"{account.balance} {account.currency or ''}".strip(),
            str(counts.get(account.vendor_id, 0)),
        )

    console.print()
    console.print(table)
    console.print(f"Balance histories saved: {len(result.histories)}")

    if result.warnings:
        console.print(f"\n[yellow]Warnings ({len(result.warnings)}):[/yellow]")
        for warning in result.warnings[:10]:
            console.print(f"  - {warning}")
        if len(result.warnings) > 10:
            console.print(f"  ... and {len(result.warnings) - 10} more")

    if result.dry_run:
        console.print("\n[yellow]Dry run - nothing was saved[/yellow]")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return EXIT_CONFIG_ERROR

    log_level = get_log_level(args.verbose) if args.verbose else config.logging.level
    setup_logging(level=log_level, log_file=config.logging.file, console_output=args.verbose > 0)

    if args.validate_only:
        return validate_config(config)

    console.print(f"[bold]bank-sync v{__version__}[/bold]\n")
    console.print(f"Upstream: {config.upstream.base_url}")
    if not args.dry_run:
        console.print(f"Store: {config.store.path}")

    upstream = WeboobClient(config.upstream)
    store = None if args.dry_run else SQLiteStore(config.store.path)

    try:
        with console.status("[bold green]Authenticating...") as status:

            def show_stage(stage: PipelineStage) -> None:
                message = STAGE_MESSAGES.get(stage)
                if message:
                    status.update(f"[bold green]{message}")

            pipeline = SyncPipeline(config, upstream, store, on_stage=show_stage)
            result = pipeline.run(dry_run=args.dry_run)
    except LoginFailedError as e:
        console.print(f"[red]Login failed: {e}[/red]")
        return EXIT_LOGIN_FAILED
    except VendorDownError as e:
        console.print(f"[red]Bank service unavailable, try again later: {e}[/red]")
        return EXIT_VENDOR_DOWN
    except (UpstreamError, NormalizationError, StoreError) as e:
        console.print(f"[red]Synchronization failed: {e}[/red]")
        logger.error(f"Synchronization failed: {e}")
        return EXIT_SYNC_ERROR

    display_summary(result)
    console.print("\n[green]Synchronization complete[/green]")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
