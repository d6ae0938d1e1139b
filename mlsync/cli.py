"""mlsync CLI — the main entry point for the masterlist synchronizer."""

import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mlsync import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging output")
def main(verbose: bool):
    """mlsync — keep a version-controlled masterlist current and parseable.

    Pulls the newest masterlist from Git or Subversion and, if it no longer
    parses, rolls it back until it does.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        logging.basicConfig(level=logging.WARNING)


# ── Update ───────────────────────────────────────────────────────────


@main.command()
@click.argument("masterlist", type=click.Path(dir_okay=False))
@click.option("--url", "-u", default="", help="Remote masterlist URL (empty: report local revision)")
@click.option("--config", "-c", "config_path", default=None, type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.option("--max-rollbacks", type=int, default=None, help="Maximum revisions to roll back")
@click.option("--svn", "svn_path", default=None, help="Path to the svn executable")
@click.option("--branch", default=None, help="Git branch to pull")
@click.option("--record/--no-record", default=None, help="Append the outcome to the sync history")
def update(
    masterlist: str,
    url: str,
    config_path: str | None,
    max_rollbacks: int | None,
    svn_path: str | None,
    branch: str | None,
    record: bool | None,
):
    """Update MASTERLIST from its remote, rolling back past unparseable revisions."""
    from mlsync.errors import RollbackError, SyncError
    from mlsync.models import Target
    from mlsync.sync.synchronizer import MasterlistSynchronizer

    try:
        config = _build_config(config_path, max_rollbacks, svn_path, branch, record)
        target = Target(url=url, masterlist_path=masterlist)
        console.print(f"\n[bold blue]mlsync[/] — Updating: {masterlist}\n")
        result = MasterlistSynchronizer(target, config).synchronize()
    except RollbackError as e:
        _print_failures(e.failures)
        console.print(f"[red]Update failed:[/] {escape(str(e))}")
        sys.exit(1)
    except SyncError as e:
        console.print(f"[red]Update failed:[/] {escape(str(e))}")
        sys.exit(1)

    _print_failures(result.failures)
    if result.failures:
        console.print(
            f"[yellow]Rolled back {result.rollbacks} revision(s).[/] "
            f"Masterlist revision: [cyan]{escape(result.revision)}[/]"
        )
    else:
        console.print(f"[green]Masterlist revision:[/] [cyan]{escape(result.revision)}[/]")


# ── Revision ─────────────────────────────────────────────────────────


@main.command()
@click.argument("masterlist", type=click.Path(dir_okay=False))
@click.option("--svn", "svn_path", default=None, help="Path to the svn executable")
def revision(masterlist: str, svn_path: str | None):
    """Print the revision of MASTERLIST on disk, without contacting the remote."""
    from mlsync.errors import SyncError
    from mlsync.models import Target
    from mlsync.sync.synchronizer import MasterlistSynchronizer

    try:
        config = _build_config(None, None, svn_path, None, None)
        rev = MasterlistSynchronizer(Target(url="", masterlist_path=masterlist), config).local_revision()
    except SyncError as e:
        console.print(f"[red]Could not read revision:[/] {escape(str(e))}")
        sys.exit(1)

    console.print(escape(rev))


# ── Validate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("masterlist", type=click.Path(dir_okay=False))
def validate(masterlist: str):
    """Check that MASTERLIST parses."""
    from mlsync.validator import validate_masterlist

    result = validate_masterlist(masterlist)
    if result.passed:
        console.print("[green]v[/] Masterlist parses")
        return

    console.print(f"[red]x[/] {escape(result.describe())}")
    sys.exit(1)


# ── History ──────────────────────────────────────────────────────────


@main.command()
@click.argument("repo_dir", type=click.Path(file_okay=False))
def history(repo_dir: str):
    """List recorded synchronizations for the working copy at REPO_DIR."""
    from mlsync.sync.history import SyncHistory

    entries = SyncHistory(repo_dir).get_history()

    if not entries:
        console.print("[yellow]No synchronizations recorded.[/]")
        return

    table = Table(title=f"Sync History ({len(entries)} entries)")
    table.add_column("When", style="dim")
    table.add_column("Backend")
    table.add_column("Revision", style="cyan")
    table.add_column("Rollbacks", justify="right")
    table.add_column("URL")

    for entry in entries:
        table.add_row(
            escape(entry.synced_at),
            escape(entry.backend),
            escape(entry.revision),
            str(entry.rollbacks),
            escape(entry.url),
        )

    console.print(table)


def _build_config(config_path, max_rollbacks, svn_path, branch, record):
    from dataclasses import replace

    from mlsync.config import load_config

    config = load_config(config_path)
    overrides = {
        "max_rollbacks": max_rollbacks,
        "svn_path": svn_path,
        "git_branch": branch,
        "record_history": record,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def _print_failures(failures) -> None:
    if not failures:
        return

    table = Table(title="Skipped Masterlist Revisions")
    table.add_column("Revision", style="cyan")
    table.add_column("Error", style="red")
    for failure in failures:
        table.add_row(escape(failure.revision), escape(failure.message))
    console.print(table)


if __name__ == "__main__":
    main()
