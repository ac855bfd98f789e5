"""Rich terminal display for spacelens."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from spacelens.classifier import is_cleanable_dir, is_handled_by_cleaner
from spacelens.models import DirEntry, DiskUsage, FileEntry, ScanResult, format_size

console = Console()


def entry_hint(path: str) -> str:
    """Styled note telling the user another flow owns a path."""
    if is_handled_by_cleaner(path):
        return "[cyan]cache cleaner[/cyan]"
    if is_cleanable_dir(path):
        return "[green]build artifact[/green]"
    return ""


def usage_bar(size: int, total: int, width: int = 20) -> str:
    """Proportional bar for a share of the parent total."""
    if total <= 0 or size <= 0:
        return ""
    filled = max(1, round(width * size / total))
    return "█" * min(filled, width)


def show_scan_result(path: str, result: ScanResult, cached: bool = False, top: int = 25) -> None:
    """Display the children of a scanned directory, largest first."""
    source = " [dim](cached)[/dim]" if cached else ""
    console.print(f"[bold]{path}[/bold]  {result.size_human}{source}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Share")
    table.add_column("Name")
    table.add_column("Note")

    entries: list[DirEntry] = result.entries[:top] if top > 0 else result.entries
    for entry in entries:
        name = f"[bold blue]{entry.name}/[/bold blue]" if entry.is_dir else entry.name
        table.add_row(
            entry.size_human,
            usage_bar(entry.size, result.total_size),
            name,
            entry_hint(entry.path) if entry.is_dir else "",
        )

    console.print(table)
    hidden = len(result.entries) - len(entries)
    if hidden > 0:
        console.print(f"[dim]... and {hidden} more entries[/dim]")


def show_large_files(files: list[FileEntry], limit: int = 10) -> None:
    """Display the largest individual files."""
    if not files:
        return

    table = Table(title="Largest Files", show_header=True, header_style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Path")
    for item in files[:limit]:
        table.add_row(item.size_human, item.path)
    console.print(table)


def show_overview(path: str, size: int, stored: bool = False) -> None:
    """Display an overview total."""
    label = "last measured" if stored else "measured"
    console.print(f"[bold]{path}[/bold]: {format_size(size)} [dim]({label})[/dim]")


def show_trash_result(path: str | Path, files: int) -> None:
    """Display result of a trash operation."""
    console.print(f"  [green]✓[/green] Moved {path} to trash ({files} files)")


def show_error(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")


def show_classification(path: str) -> None:
    """Display which cleanup flow, if any, owns a path."""
    handled = is_handled_by_cleaner(path)
    cleanable = is_cleanable_dir(path)
    table = Table(show_header=False)
    table.add_column("Check", style="bold")
    table.add_column("Result")
    table.add_row("Handled by cache cleaner", "[cyan]yes[/cyan]" if handled else "no")
    table.add_row("Build artifact", "[green]yes[/green]" if cleanable else "no")
    console.print(Panel(table, title=path, border_style="blue"))


def show_status(disk_usage: DiskUsage, mounts: list[Path] | None = None) -> None:
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

    if mounts:
        console.print("\n[bold]Volumes:[/bold]")
        for mount in mounts:
            console.print(f"  • {mount}")


def show_scanning_progress() -> Progress:
    """Create a spinner with live counters for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
