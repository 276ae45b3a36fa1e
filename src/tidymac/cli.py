"""CLI interface for tidymac."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler

from tidymac import __version__
from tidymac.categories import get_all_categories
from tidymac.cleaner import CleaningService
from tidymac.config import Settings, get_settings
from tidymac.diskusage import get_disk_usage
from tidymac.display import (
    confirm_action,
    console,
    show_categories,
    show_cleaning_result,
    show_cleanup_preview,
    show_duplicates,
    show_progress,
    show_scan_result,
    show_status,
    show_whitelist,
)
from tidymac.duplicates import DuplicateFinder
from tidymac.models import CleanCategory, ScanResult
from tidymac.safety import PathValidator
from tidymac.scanner import DiskScanner
from tidymac.scheduler import ProgressCallback
from tidymac.whitelist import Whitelist, WhitelistError

# Create Typer app
app = typer.Typer(
    name="tidymac",
    help="Mac disk cleanup CLI - reclaim space without touching the system",
    add_completion=False,
)
whitelist_app = typer.Typer(help="Manage paths that are never cleaned.")
app.add_typer(whitelist_app, name="whitelist")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"tidymac version {__version__}")
        raise typer.Exit()


def _setup_logging(settings: Settings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_whitelist(settings: Settings) -> Whitelist:
    try:
        return Whitelist.load(settings.whitelist_file)
    except WhitelistError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _build_validator(settings: Settings, whitelist: Whitelist) -> PathValidator:
    return PathValidator(home=settings.home, trash_dir=settings.trash_dir, whitelist=whitelist)


def _run_scan(settings: Settings, whitelist: Whitelist, categories: Optional[list[CleanCategory]]) -> ScanResult:
    selected = settings.enabled_categories(categories)
    if not selected:
        console.print("[yellow]All requested categories are disabled.[/yellow]")
        raise typer.Exit(0)

    scanner = DiskScanner(settings, whitelist=whitelist)
    with show_progress() as progress:
        task = progress.add_task("Scanning...", total=100)
        result = scanner.scan(selected, on_progress=_progress_updater(progress, task))
    console.print()
    return result


def _progress_updater(progress, task) -> ProgressCallback:
    def update(fraction: float, message: str) -> None:
        progress.update(task, completed=fraction * 100, description=message)

    return update


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    """tidymac - Mac disk cleanup CLI."""
    _setup_logging(get_settings(), verbose)


@app.command()
def scan(
    category: Optional[list[CleanCategory]] = typer.Option(
        None, "--category", "-c", help="Scan only this category (repeatable)"
    ),
) -> None:
    """Scan for reclaimable space."""
    settings = get_settings()
    result = _run_scan(settings, _load_whitelist(settings), category)

    if not result.items and not result.errors:
        console.print("[green]Nothing to clean.[/green]")
        return

    show_scan_result(result)
    console.print()
    console.print("[dim]Run [bold]tidymac clean[/bold] to clean these items[/dim]")


@app.command()
def duplicates(
    directories: Optional[list[Path]] = typer.Argument(
        None, help="Directories to search (default: your home folders)"
    ),
    min_size: Optional[int] = typer.Option(None, "--min-size", help="Ignore files smaller than this (bytes)"),
    full_hash: bool = typer.Option(
        False, "--full-hash", help="Hash whole files, even very large ones (slower, exact)"
    ),
    top: int = typer.Option(20, "--top", help="Number of groups to show"),
) -> None:
    """Find duplicate files."""
    settings = get_settings()
    finder = DuplicateFinder(settings)
    roots = directories or [settings.home]

    with show_progress() as progress:
        task = progress.add_task("Indexing files...", total=100)
        groups = finder.find_duplicates(
            roots,
            min_size=min_size,
            on_progress=_progress_updater(progress, task),
            full_hash=full_hash,
        )

    console.print()
    show_duplicates(groups, top=top)


@app.command()
def clean(
    category: Optional[list[CleanCategory]] = typer.Option(
        None, "--category", "-c", help="Clean only this category (repeatable)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
) -> None:
    """Scan, then clean what was found."""
    settings = get_settings()
    whitelist = _load_whitelist(settings)
    result = _run_scan(settings, whitelist, category)

    if not result.selected_items:
        console.print("[yellow]Nothing to clean.[/yellow]")
        raise typer.Exit(0)

    show_cleanup_preview(result, dry_run=dry_run)

    if not yes and not dry_run:
        console.print()
        if not confirm_action("Proceed with cleanup?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        destructive = sorted({i.category.value for i in result.selected_items if i.category.is_destructive})
        if destructive:
            console.print(
                f"[red]The selection includes your own files ({', '.join(destructive)}).[/red]"
            )
            if not confirm_action("Really move them to the Trash?"):
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(0)

    disk_before = get_disk_usage()
    service = CleaningService(_build_validator(settings, whitelist), settings=settings)
    with show_progress() as progress:
        task = progress.add_task("Cleaning...", total=100)
        cleaning = service.delete_items(
            result.items, on_progress=_progress_updater(progress, task), dry_run=dry_run
        )

    disk_after = None if dry_run else get_disk_usage()
    show_cleaning_result(cleaning, disk_before, disk_after)
    if cleaning.has_failures:
        raise typer.Exit(1)


@app.command(name="empty-trash")
def empty_trash(
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Permanently delete everything in the Trash."""
    settings = get_settings()
    if not yes and not confirm_action(f"Permanently delete everything in {settings.trash_dir}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    service = CleaningService(_build_validator(settings, _load_whitelist(settings)), settings=settings)
    removed, failed = service.empty_trash()
    console.print(f"[green]Removed {removed} items from the Trash.[/green]")
    if failed:
        console.print(f"[red]{failed} items could not be removed.[/red]")
        raise typer.Exit(1)


@app.command()
def status() -> None:
    """Show current disk usage summary."""
    show_status(get_disk_usage())


@app.command(name="list")
def list_categories() -> None:
    """List all cleanup categories."""
    settings = get_settings()
    show_categories(get_all_categories(), set(settings.enabled_categories()))
    console.print("[dim]Disable categories with TIDYMAC_DISABLED_CATEGORIES='[\"docker\"]'[/dim]")


@whitelist_app.command(name="list")
def whitelist_list() -> None:
    """Show whitelisted paths."""
    show_whitelist(_load_whitelist(get_settings()))


@whitelist_app.command(name="add")
def whitelist_add(
    path: Path = typer.Argument(..., help="Path to protect"),
    reason: Optional[str] = typer.Option(None, "--reason", help="Why it must be kept"),
) -> None:
    """Protect a path from scanning and cleaning."""
    settings = get_settings()
    whitelist = _load_whitelist(settings)
    entry = whitelist.add(path, reason=reason)
    whitelist.save(settings.whitelist_file)
    console.print(f"[green]Whitelisted {entry.path}[/green]")


@whitelist_app.command(name="remove")
def whitelist_remove(path: Path = typer.Argument(..., help="Path to stop protecting")) -> None:
    """Remove a path from the whitelist."""
    settings = get_settings()
    whitelist = _load_whitelist(settings)
    if not whitelist.remove(path):
        console.print(f"[yellow]Not whitelisted: {path}[/yellow]")
        raise typer.Exit(1)
    whitelist.save(settings.whitelist_file)
    console.print(f"[green]Removed {path} from the whitelist[/green]")


if __name__ == "__main__":
    app()
