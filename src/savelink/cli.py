from __future__ import annotations

from importlib.metadata import version
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from savelink.core import orchestrator
from savelink.core.catalog import Catalog, is_valid_id
from savelink.core.errors import (
    LinkCapabilityError,
    LoadError,
    SavelinkError,
    SettingsError,
    ValidationError,
)
from savelink.core.models import BatchReport, EntryStatus, Game, SavePath, SaveStatus
from savelink.logging_setup import setup_logging
from savelink.settings import CONFIG_DIR_ENV, Settings


def _version_callback(value: bool) -> None:
    if value:
        print(f"savelink {version('savelink')}")
        raise typer.Exit()


app = typer.Typer(
    name="savelink",
    help="Moves game saves to a storage path and creates links in their place.",
    no_args_is_help=True,
)
console = Console()

_STATUS_STYLES = {
    SaveStatus.DONE: "green",
    SaveStatus.SKIPPED: "dim",
    SaveStatus.SIMULATED: "cyan",
    SaveStatus.FAILED: "red",
}


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)
    raise typer.Exit(code=1)


def _config_dir(ctx: typer.Context) -> Path | None:
    return (ctx.obj or {}).get("config_dir")


def _load_settings(ctx: typer.Context) -> Settings:
    try:
        return Settings.load(_config_dir(ctx))
    except SettingsError as e:
        _fail(str(e))


def _open_catalog(settings: Settings) -> tuple[Path, Catalog]:
    """Resolve the storage path and load its catalog, exiting on failure."""
    try:
        storage_path = settings.require_storage_path()
        return storage_path, Catalog.open(storage_path)
    except LoadError as e:
        _fail(f"Could not load the catalog: {e}")
    except (SavelinkError, OSError) as e:
        _fail(str(e))


def _print_report(report: BatchReport) -> None:
    if not report.outcomes:
        console.print(f"[yellow]No games to {report.action}.[/yellow]")
        return

    title = f"{report.action.capitalize()} ({len(report.outcomes)} games)"
    if report.dry_run:
        title += " [dry run]"
    table = Table(title=title)
    table.add_column("Game", style="bold")
    table.add_column("Save", style="cyan")
    table.add_column("Status", justify="center", no_wrap=True)
    table.add_column("Detail", style="white")

    for outcome in report.outcomes:
        if outcome.status is EntryStatus.IGNORED:
            table.add_row(outcome.title, "", "[yellow]ignored[/yellow]", "")
            continue
        if outcome.error is not None:
            table.add_row(outcome.title, "", "[red]failed[/red]", str(outcome.error))
            continue
        first = True
        for save in outcome.saves:
            style = _STATUS_STYLES[save.status]
            table.add_row(
                outcome.title if first else "",
                save.save_id,
                f"[{style}]{save.status.value}[/{style}]",
                save.detail,
            )
            first = False

    console.print(table)

    done = report.count(EntryStatus.DONE) + report.count(EntryStatus.SIMULATED)
    console.print(
        f"\n[bold green]{done}[/bold green] done, "
        f"[bold yellow]{report.count(EntryStatus.PARTIAL)}[/bold yellow] partial, "
        f"[bold red]{report.count(EntryStatus.FAILED)}[/bold red] failed, "
        f"[bold]{report.count(EntryStatus.IGNORED)}[/bold] ignored."
    )


def _run_batch(ctx: typer.Context, operation, dry_run: bool) -> None:
    settings = _load_settings(ctx)
    storage_path, catalog = _open_catalog(settings)

    try:
        report = operation(
            catalog.games,
            storage_path,
            is_ignored=settings.is_ignored,
            dry_run=dry_run,
        )
    except LinkCapabilityError as e:
        _fail(str(e))

    _print_report(report)


@app.command("set-storage-path")
def set_storage_path(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Where game saves and the catalog should be stored"),
):
    """Set where game saves and meta data should be stored."""
    settings = _load_settings(ctx)
    try:
        resolved = settings.set_storage_path(path)
        settings.save(_config_dir(ctx))
    except (ValueError, OSError) as e:
        _fail(str(e))

    console.print(f"Your storage path has been set to [bold]{resolved}[/bold]")


@app.command("link")
def link(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        is_flag=True,
        help="Show what would happen without touching any files",
    ),
):
    """Move game saves from their original locations to the storage path and
    create links to their new location."""
    _run_batch(ctx, orchestrator.link_all, dry_run)


@app.command("restore")
def restore(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        is_flag=True,
        help="Show what would happen without touching any files",
    ),
):
    """Create links to game saves which have been moved to the storage path."""
    _run_batch(ctx, orchestrator.restore_all, dry_run)


@app.command("unlink")
def unlink(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        is_flag=True,
        help="Show what would happen without touching any files",
    ),
):
    """The inverse of link: move saves back and remove the links."""
    _run_batch(ctx, orchestrator.unlink_all, dry_run)


@app.command("search")
def search(
    ctx: typer.Context,
    keyword: str = typer.Argument(..., help="Case-sensitive text to find in game ids and titles"),
):
    """Search the catalog for the keyword."""
    if not keyword:
        _fail("The keyword must not be empty")

    settings = _load_settings(ctx)
    _, catalog = _open_catalog(settings)
    games = catalog.search(keyword)

    if not games:
        console.print("[yellow]Couldn't find any matching games[/yellow]")
        return

    table = Table(title=f"Matching Games ({len(games)})")
    table.add_column("Title", style="bold")
    table.add_column("Id", style="cyan")
    table.add_column("Custom", justify="center")
    table.add_column("Saves", style="white")
    for game in games:
        custom = "[green]yes[/green]" if game.custom else "no"
        saves = "\n".join(f"{s.id}: {s.template}" for s in game.saves)
        table.add_row(game.title, game.id, custom, saves)
    console.print(table)


@app.command("add")
def add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Display name of the game"),
    game_id: str = typer.Argument(..., metavar="ID", help="Unique id, also the storage folder name"),
    path: str = typer.Argument(..., help="Save location, starting with a variable, e.g. '$APPDATA/Game'"),
    save_id: str = typer.Option(
        "saves",
        "--save-id",
        "-s",
        help="Name of the save's folder inside the game's storage folder",
    ),
):
    """Add a custom game to the catalog, replacing an earlier custom entry."""
    if not title.strip() or not game_id.strip() or not save_id.strip():
        _fail("The title, id and save id must not be empty")
    if not is_valid_id(game_id.strip()) or not is_valid_id(save_id.strip()):
        _fail("The id and save id are used as folder names and can't contain path separators")

    settings = _load_settings(ctx)
    _, catalog = _open_catalog(settings)

    try:
        save = SavePath.from_template(save_id.strip(), path)
    except ValidationError as e:
        _fail(str(e))

    game = Game(title=title.strip(), id=game_id.strip(), custom=True, saves=[save])
    try:
        catalog.add(game)
    except OSError as e:
        _fail(f"Could not save the catalog: {e}")

    console.print(f"Added [bold]{game.title}[/bold] ({game.id}) -> {save.path}")


@app.command("ignore")
def ignore(
    ctx: typer.Context,
    game_id: str = typer.Argument(..., metavar="ID", help="Id of the game to skip"),
):
    """Skip a game in link, restore and unlink."""
    settings = _load_settings(ctx)
    try:
        changed = settings.ignore(game_id.strip())
        settings.save(_config_dir(ctx))
    except (ValueError, OSError) as e:
        _fail(str(e))

    if changed:
        console.print(f"{game_id} is now ignored")
    else:
        console.print(f"[yellow]{game_id} was already ignored[/yellow]")


@app.command("heed")
def heed(
    ctx: typer.Context,
    game_id: str = typer.Argument(..., metavar="ID", help="Id of the game to stop ignoring"),
):
    """Stop ignoring a game."""
    settings = _load_settings(ctx)
    try:
        changed = settings.heed(game_id.strip())
        settings.save(_config_dir(ctx))
    except (ValueError, OSError) as e:
        _fail(str(e))

    if changed:
        console.print(f"{game_id} is no longer ignored")
    else:
        console.print(f"[yellow]{game_id} wasn't ignored[/yellow]")


@app.callback()
def default(
    ctx: typer.Context,
    version_flag: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        is_eager=True,
        callback=_version_callback,
        is_flag=True,
    ),
    config_dir: Path = typer.Option(
        None,
        "--config-dir",
        envvar=CONFIG_DIR_ENV,
        help="Directory holding settings.yaml (default: the user config directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        is_flag=True,
        help="Log debug details",
    ),
):
    """Moves game saves to a storage path and creates links in their place."""
    setup_logging(verbose)
    ctx.obj = {"config_dir": config_dir}
