"""CLI interface for spacelens."""

from concurrent.futures import wait
from typing import Optional

import typer

from spacelens import __version__
from spacelens.cache import normalize_path
from spacelens.config import load_settings
from spacelens.display import (
    confirm_action,
    console,
    entry_hint,
    format_size,
    show_classification,
    show_error,
    show_large_files,
    show_overview,
    show_scan_result,
    show_scanning_progress,
    show_status,
    show_trash_result,
)
from spacelens.errors import RootUnreadableError, SpacelensError
from spacelens.explorer import Explorer
from spacelens.log import setup_logging
from spacelens.volumes import (
    default_volumes_root,
    get_disk_usage,
    has_useful_volume_mounts,
    list_volume_mounts,
)

POLL_INTERVAL = 0.1

# Create Typer app
app = typer.Typer(
    name="spacelens",
    help="Find where your disk space went and move what you don't need to the trash",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"spacelens version {__version__}")
        raise typer.Exit()


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
    """spacelens - disk usage explorer with safe deletion."""
    setup_logging(verbose=verbose, log_file=load_settings().log_file)


def _wait_with_progress(job, describe):
    """Block on a background job while a spinner shows its counters."""
    with show_scanning_progress() as progress:
        task = progress.add_task(describe(job.progress), total=None)
        while not wait([job.future], timeout=POLL_INTERVAL).done:
            progress.update(task, description=describe(job.progress))
    return job.result()


@app.command()
def scan(
    path: str = typer.Argument(".", help="Directory to scan"),
    refresh: bool = typer.Option(False, "--refresh", help="Ignore cached results"),
    top: int = typer.Option(25, "--top", "-n", help="Number of entries to show (0 for all)"),
    files: int = typer.Option(10, "--files", help="Number of largest files to show"),
) -> None:
    """Show what takes up space inside a directory."""
    target = normalize_path(path)

    with Explorer() as explorer:
        stored = explorer.stored_overview(target)
        if stored is not None:
            show_overview(target, stored, stored=True)

        job = explorer.start_scan(target, use_cache=not refresh)

        def describe(progress) -> str:
            scanned_files, scanned_dirs, scanned_bytes = progress.snapshot()
            return (
                f"Scanning {scanned_files} files, {scanned_dirs} dirs, "
                f"{format_size(scanned_bytes)}"
            )

        try:
            result, hit = _wait_with_progress(job, describe)
        except KeyboardInterrupt:
            job.cancel()
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(130)
        except RootUnreadableError as e:
            show_error(str(e))
            raise typer.Exit(1)

    show_scan_result(target, result, cached=hit, top=top)
    if files > 0:
        console.print()
        show_large_files(result.large_files, limit=files)


@app.command()
def overview(
    path: str = typer.Argument(".", help="Path to measure"),
    stored: bool = typer.Option(False, "--stored", help="Show the last measured value instead"),
) -> None:
    """Show the total size of a path."""
    target = normalize_path(path)

    with Explorer() as explorer:
        if stored:
            size = explorer.stored_overview(target)
            if size is None:
                console.print(f"[yellow]No stored size for {target}[/yellow]")
                raise typer.Exit(1)
            show_overview(target, size, stored=True)
            return

        try:
            size = explorer.overview(target)
        except RootUnreadableError as e:
            show_error(str(e))
            raise typer.Exit(1)

    show_overview(target, size)


@app.command()
def trash(
    path: str = typer.Argument(..., help="File or directory to move to the trash"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Move a file or directory to the trash."""
    target = normalize_path(path)

    hint = entry_hint(target)
    if hint:
        console.print(f"Note: {target} is also covered by another cleanup flow ({hint})")

    if not yes and not confirm_action(f"Move {target} to trash?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    with Explorer() as explorer:
        job = explorer.start_trash(target)
        try:
            count = _wait_with_progress(job, lambda counter: f"Collecting {counter.value} files")
        except KeyboardInterrupt:
            job.cancel()
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(130)
        except SpacelensError as e:
            show_error(str(e))
            raise typer.Exit(1)

    show_trash_result(target, count)


@app.command()
def classify(path: str = typer.Argument(..., help="Path to classify")) -> None:
    """Show whether another cleanup flow already owns a path."""
    show_classification(path)


@app.command(name="clear-cache")
def clear_cache(
    path: Optional[str] = typer.Argument(None, help="Only forget this directory"),
) -> None:
    """Forget cached scan results."""
    with Explorer() as explorer:
        if path:
            removed = 1 if explorer.cache.invalidate(path) else 0
            explorer.overview_store.discard([path])
        else:
            removed = explorer.cache.clear()
            explorer.overview_store.clear()

    console.print(f"Removed {removed} cached scan(s)")


@app.command()
def status(
    mount_point: str = typer.Argument("/", help="Mount point to report"),
) -> None:
    """Show current disk usage summary."""
    try:
        disk_usage = get_disk_usage(mount_point)
    except OSError as e:
        show_error(f"Cannot read disk usage for {mount_point}: {e.strerror or e}")
        raise typer.Exit(1)

    volumes_root = default_volumes_root()
    mounts = list_volume_mounts(volumes_root) if has_useful_volume_mounts(volumes_root) else None
    show_status(disk_usage, mounts)


if __name__ == "__main__":
    app()
