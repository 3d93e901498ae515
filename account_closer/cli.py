"""
Command-line interface for the daily account closure run.

CLI Structure:
    account-closer              # apply mode: accounts are closed
    account-closer --dry-run    # decisions and logs only, nothing is changed
    account-closer -n           # same as --dry-run

Exit codes:
    0  run completed (per-account failures are reported in the logs)
    1  fatal startup error (configuration invalid, account export missing,
       log files not writable)
    2  usage error (unknown option or extra argument)
"""
import click
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from account_closer import __version__
from account_closer.config import ConfigError, load_env_vars
from account_closer.config_loader import load_config, resolve_config_path
from account_closer.error_handling import InputSourceError
from account_closer.job import run_job
from account_closer.logging_config import shutdown_logging


@dataclass
class RunOptions:
    """Structured options for a run."""
    dry_run: bool
    config_path: Optional[str]
    env_path: str


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.version_option(version=__version__, prog_name='account-closer')
@click.option(
    '--dry-run', '-n',
    is_flag=True,
    default=False,
    help='Evaluate and log every decision without changing any account status.'
)
@click.option(
    '--config',
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help='Path to YAML configuration file (default: config/config.yaml if present, else built-in defaults)'
)
@click.option(
    '--env',
    type=click.Path(path_type=Path, dir_okay=False),
    default='.env',
    help='Path to .env file with ACCOUNT_CLOSER_* overrides (default: .env)'
)
def cli(dry_run: bool, config: Optional[Path], env: Path):
    """
    Close inactive mailbox accounts.

    Reads the account export and the exclusion list, decides for every
    active account whether it must be closed, and closes it with zmprov
    (or only logs the decision with --dry-run).
    """
    options = RunOptions(
        dry_run=dry_run,
        config_path=str(config) if config is not None else None,
        env_path=str(env),
    )
    sys.exit(execute(options))


def execute(options: RunOptions) -> int:
    """Run with parsed options and return the process exit code."""
    env_loaded = load_env_vars(options.env_path)

    try:
        config = load_config(options.config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        return 1

    if options.dry_run:
        click.echo("[DRY-RUN] No account status will be changed")

    try:
        summary = run_job(
            config,
            dry_run=options.dry_run,
            config_source=resolve_config_path(options.config_path),
            env_file=options.env_path if env_loaded else None,
        )
    except InputSourceError as e:
        click.echo(f"Error: {e}", err=True)
        return 1
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        return 1
    finally:
        shutdown_logging()

    click.echo(
        f"Closed: {summary.closed}, failed: {summary.failed}, skipped: {summary.skipped}, "
        f"ignored: {summary.ignored}, malformed: {summary.malformed}"
    )
    return 0


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
