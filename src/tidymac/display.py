"""Rich terminal display for tidymac."""

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from tidymac.categories import CategoryInfo, get_category
from tidymac.models import (
    CleanCategory,
    CleaningResult,
    DiskUsage,
    DuplicateGroup,
    ScanResult,
    format_size,
)
from tidymac.whitelist import Whitelist

console = Console()


def category_icon(category: CleanCategory) -> str:
    """Get icon for a category's risk."""
    return "[red]![/red]" if category.is_destructive else "[green]✓[/green]"


def _usage_color(used_percent: float) -> str:
    if used_percent >= 90:
        return "red"
    elif used_percent >= 75:
        return "yellow"
    return "green"


def show_disk_summary(disk_usage: DiskUsage) -> None:
    """Display disk usage summary."""
    color = _usage_color(disk_usage.used_percent)

    table = Table(title="Disk Summary", show_header=True, header_style="bold")
    table.add_column("Total", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Free", justify="right")
    table.add_column("Usage", justify="right")

    table.add_row(
        f"{disk_usage.total_gb:.0f} GB",
        f"{disk_usage.used_gb:.0f} GB",
        f"[bold]{disk_usage.free_gb:.0f} GB[/bold]",
        f"[{color}]{disk_usage.used_percent:.0f}%[/{color}]",
    )

    console.print(table)
    console.print()


def show_scan_result(result: ScanResult) -> None:
    """Display a per-category summary of a scan."""
    table = Table(title="Reclaimable Space", show_header=True, header_style="bold")
    table.add_column("", width=3)
    table.add_column("Category")
    table.add_column("Items", justify="right")
    table.add_column("Size", justify="right")

    grouped = result.items_by_category()
    sizes = result.size_by_category()
    for category in sorted(grouped, key=lambda c: sizes[c], reverse=True):
        table.add_row(
            category_icon(category),
            get_category(category).name,
            str(len(grouped[category])),
            format_size(sizes[category]),
        )

    console.print(table)

    for error in result.errors:
        console.print(f"[yellow]Warning:[/yellow] {error}")

    console.print(
        Panel(
            f"[bold]Potential space to reclaim:[/bold] {format_size(result.total_size)}\n"
            f"  Items found: {len(result.items)}\n"
            f"  Scan time: {result.duration_seconds:.1f}s",
            title="Summary",
            border_style="blue",
        )
    )


def show_cleanup_preview(result: ScanResult, dry_run: bool = False, limit: int = 20) -> None:
    """Display the selected items, largest first."""
    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    selected = sorted(result.selected_items, key=lambda i: i.size_bytes, reverse=True)

    table = Table(title="Cleanup Preview", show_header=True, header_style="bold")
    table.add_column("", width=3)
    table.add_column("Category")
    table.add_column("Item")
    table.add_column("Size", justify="right")

    for item in selected[:limit]:
        table.add_row(
            category_icon(item.category),
            get_category(item.category).name,
            str(item.path),
            item.size_human,
        )
    if len(selected) > limit:
        table.add_row("", "", f"[dim]... and {len(selected) - limit} more[/dim]", "")

    console.print(table)
    console.print(f"\n[bold]Total to clean: {format_size(result.selected_size)}[/bold]")


def show_progress() -> Progress:
    """Create a progress bar driven by fraction callbacks."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )


def show_cleaning_result(
    result: CleaningResult,
    disk_before: DiskUsage | None = None,
    disk_after: DiskUsage | None = None,
) -> None:
    """Display cleanup summary."""
    console.print()
    if result.dry_run:
        console.print("[bold yellow]Dry run complete[/bold yellow]")
    else:
        console.print("[bold green]Cleanup Complete![/bold green]")
    console.print()

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    label = "Space that would be freed" if result.dry_run else "Space freed"
    table.add_row(label, format_size(result.total_freed))
    table.add_row("Items cleaned", str(result.success_count))
    if result.has_failures:
        table.add_row("[red]Failed[/red]", str(result.failure_count))
    if disk_before and disk_after:
        table.add_row("Free space before", f"{disk_before.free_gb:.1f} GB")
        table.add_row("Free space after", f"[bold green]{disk_after.free_gb:.1f} GB[/bold green]")

    console.print(table)

    for failed in result.failed:
        console.print(f"  [red]✗[/red] {failed.item.path}: {failed.message} ({failed.reason.value})")


def show_duplicates(groups: list[DuplicateGroup], top: int = 20) -> None:
    """Display the duplicate groups wasting the most space."""
    if not groups:
        console.print("[green]No duplicate files found.[/green]")
        return

    for group in groups[:top]:
        table = Table(
            title=f"{len(group.files)} x {format_size(group.size_bytes)} "
            f"(wasted {format_size(group.wasted_space)})",
            show_header=False,
            title_justify="left",
        )
        table.add_column("", width=8)
        table.add_column("Path")
        table.add_column("Modified")
        for f in group.files:
            table.add_row(
                "[green]original[/green]" if f.is_original else "[dim]copy[/dim]",
                str(f.path),
                f.modified.strftime("%Y-%m-%d %H:%M") if f.modified else "?",
            )
        console.print(table)

    total_wasted = sum(g.wasted_space for g in groups)
    console.print(
        f"\n[bold]{len(groups)} duplicate groups, {format_size(total_wasted)} reclaimable[/bold]"
    )
    if len(groups) > top:
        console.print(f"[dim]Showing top {top}. Use --top to see more.[/dim]")


def show_categories(categories: list[CategoryInfo], enabled: set[CleanCategory]) -> None:
    """List categories with their destructive flag and enabled state."""
    table = Table(title="Available Categories", show_header=True, header_style="bold")
    table.add_column("", width=3)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Enabled", justify="center")

    for info in categories:
        table.add_row(
            category_icon(info.category),
            info.category.value,
            info.name,
            info.description,
            "[green]yes[/green]" if info.category in enabled else "[dim]no[/dim]",
        )

    console.print(table)
    console.print("[dim][red]![/red] items may be your own files and are double-confirmed[/dim]")


def show_whitelist(whitelist: Whitelist) -> None:
    if not len(whitelist):
        console.print("[dim]Whitelist is empty.[/dim]")
        return

    table = Table(title="Whitelist", show_header=True, header_style="bold")
    table.add_column("Path")
    table.add_column("Reason")
    table.add_column("Added")
    for entry in whitelist.entries:
        table.add_row(str(entry.path), entry.reason or "", entry.date_added.strftime("%Y-%m-%d"))
    console.print(table)


def show_status(disk_usage: DiskUsage) -> None:
    """Display quick status."""
    used_percent = disk_usage.used_percent

    if used_percent >= 90:
        status = "[red]CRITICAL[/red]"
    elif used_percent >= 75:
        status = "[yellow]WARNING[/yellow]"
    else:
        status = "[green]OK[/green]"

    console.print(f"Disk Status: {status}")
    console.print(f"  Total: {disk_usage.total_gb:.0f} GB")
    console.print(f"  Used:  {disk_usage.used_gb:.0f} GB ({used_percent:.0f}%)")
    console.print(f"  Free:  {disk_usage.free_gb:.0f} GB")


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
