"""Command-line interface for PAI."""

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pai import __version__
from pai.config import (
    CONFIG_FILENAME, DEFAULT_CONFIG_TEMPLATE, Config, default_config_dir,
)
from pai.errors import InvalidArgumentError, PaiError, PaiIOError
from pai.export import ExportFormat, render
from pai.models import SourceKind
from pai.query import build_filter
from pai.store import Store
from pai.sync import sync_each


console = Console()
err_console = Console(stderr=True, soft_wrap=True)

DEFAULT_ADDRESS = "127.0.0.1:8080"

KIND_CHOICE = click.Choice([k.value for k in SourceKind], case_sensitive=False)
FORMAT_CHOICE = click.Choice([f.value for f in ExportFormat], case_sensitive=False)


@dataclass
class CliContext:
    """Options shared by every command."""
    config_dir: Path
    db_path: str | None

    @property
    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    def load_config(self) -> Config:
        if not self.config_path.exists():
            err_console.print(
                f"[yellow]Warning: no config found at {escape(str(self.config_path))}, "
                "using defaults. Run 'pai init' to create one.[/yellow]"
            )
            return Config()
        return Config.from_file(self.config_path)

    def open_store(self, config: Config) -> Store:
        return config.create_store(self.db_path)


def fail(error: PaiError | str) -> NoReturn:
    """Print a one-line error to stderr and exit non-zero."""
    err_console.print(f"[red]Error:[/red] {escape(str(error))}")
    sys.exit(1)


def truncate(text: str | None, width: int) -> str:
    """Shorten text to `width` characters, ending in "..." when cut."""
    if not text:
        return ""
    text = " ".join(text.split())
    if len(text) <= width:
        return text
    return text[:width - 3] + "..."


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def filter_options(f):
    """Options shared by `list` and `export`."""
    f = click.option("-q", "--query", help="Substring to match in title or summary")(f)
    f = click.option("-s", "--since", help="Only items published since (ISO 8601, or 7d/24h/60m)")(f)
    f = click.option("-n", "--limit", type=int, default=20, show_default=True,
                     help="Maximum number of items")(f)
    f = click.option("-S", "--source-id", help="Only this source instance")(f)
    f = click.option("-k", "--kind", type=KIND_CHOICE, help="Only this source kind")(f)
    return f


@click.group()
@click.version_option(version=__version__)
@click.option("-C", "--config-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory containing config.toml")
@click.option("-d", "--db-path", type=click.Path(dir_okay=False),
              help="Path to the SQLite database")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_dir: Path | None, db_path: str | None, verbose: bool) -> None:
    """Personal Activity Index - collect your posts into one feed."""
    setup_logging(verbose)
    ctx.obj = CliContext(
        config_dir=(config_dir or default_config_dir()).expanduser(),
        db_path=db_path,
    )


# =============================================================================
# Sync
# =============================================================================


@main.command("sync")
@click.option("-a", "--all", "sync_all_sources", is_flag=True,
              help="Sync all configured sources (the default)")
@click.option("-k", "--kind", type=KIND_CHOICE, help="Only sync this source kind")
@click.option("-S", "--source-id", help="Only sync this source instance")
@click.pass_obj
def sync(ctx: CliContext, sync_all_sources: bool, kind: str | None, source_id: str | None) -> None:
    """Fetch new items from configured sources."""
    try:
        config = ctx.load_config()
        source_kind = SourceKind.parse(kind) if kind else None
        with ctx.open_store(config) as store:
            report = asyncio.run(sync_each(config, store, source_kind, source_id))
    except PaiError as e:
        fail(e)

    if not report.results:
        console.print("[yellow]No sources synced (check your config or filters)[/yellow]")
        return

    for result in report.results:
        label = f"{result.kind}/{result.source_id}"
        if result.ok:
            console.print(f"[green]✓[/green] {escape(label)}: {result.items} item(s)")
        else:
            console.print(f"[red]✗[/red] {escape(label)}: {escape(str(result.error))}")

    console.print(f"Synced {report.synced} source(s)")
    if report.failed:
        fail(f"{len(report.failed)} source(s) failed to sync")


# =============================================================================
# Reading
# =============================================================================


@main.command("list")
@filter_options
@click.pass_obj
def list_items(
    ctx: CliContext,
    kind: str | None,
    source_id: str | None,
    limit: int,
    since: str | None,
    query: str | None,
) -> None:
    """Show stored items, newest first."""
    try:
        list_filter = build_filter(kind, source_id, limit, since, query)
        config = ctx.load_config()
        with ctx.open_store(config) as store:
            items = store.list_items(list_filter)
    except PaiError as e:
        fail(e)

    if not items:
        console.print("[dim]No items found.[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("Published", width=19, no_wrap=True)
    table.add_column("Kind", width=9, no_wrap=True)
    table.add_column("Source", width=24, no_wrap=True)
    table.add_column("Title", width=60, no_wrap=True)

    for item in items:
        table.add_row(
            item.published_at[:19].replace("T", " "),
            str(item.source_kind),
            escape(truncate(item.source_id, 24)),
            escape(truncate(item.title or item.summary or item.url, 60)),
        )

    console.print(table)


@main.command("export")
@filter_options
@click.option("-f", "--format", "fmt", type=FORMAT_CHOICE, default="json", show_default=True,
              help="Output format")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              help="Write to a file instead of stdout")
@click.pass_obj
def export(
    ctx: CliContext,
    kind: str | None,
    source_id: str | None,
    limit: int,
    since: str | None,
    query: str | None,
    fmt: str,
    output: Path | None,
) -> None:
    """Export stored items as JSON, NDJSON or RSS."""
    try:
        list_filter = build_filter(kind, source_id, limit, since, query)
        export_format = ExportFormat.parse(fmt)
        config = ctx.load_config()
        with ctx.open_store(config) as store:
            items = store.list_items(list_filter)
        text = render(items, export_format)

        if output is None:
            click.echo(text, nl=False)
            return
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(text)
        except OSError as e:
            raise PaiIOError(f"Failed to write {output}: {e}") from e
    except PaiError as e:
        fail(e)

    err_console.print(f"[green]Exported {len(items)} item(s) to {escape(str(output))}[/green]")


# =============================================================================
# Server
# =============================================================================


def parse_address(address: str) -> tuple[str, int]:
    """Split `host:port`, e.g. `127.0.0.1:8080`."""
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
        raise InvalidArgumentError(f"Invalid address '{address}'. Expected HOST:PORT")
    return host.strip("[]"), int(port)


@main.command("serve")
@click.option("-a", "--address", default=DEFAULT_ADDRESS, show_default=True,
              help="Address to listen on")
@click.pass_obj
def serve(ctx: CliContext, address: str) -> None:
    """Serve stored items over HTTP."""
    import uvicorn

    from api.main import create_app

    try:
        host, port = parse_address(address)
        config = ctx.load_config()
        app = create_app(config, ctx.db_path)
    except PaiError as e:
        fail(e)

    console.print(f"Serving on [bold]http://{host}:{port}[/bold] (Ctrl-C to stop)")
    uvicorn.run(app, host=host, port=port, log_level="info")


# =============================================================================
# Maintenance
# =============================================================================


@main.command("db-check")
@click.pass_obj
def db_check(ctx: CliContext) -> None:
    """Verify the database schema and show item counts."""
    try:
        config = ctx.load_config()
        with ctx.open_store(config) as store:
            store.verify_schema()
            total = store.count_items()
            stats = store.get_stats()
    except PaiError as e:
        fail(e)

    console.print("[green]Schema OK[/green]")
    console.print(f"Total items: {total}")

    if stats:
        table = Table(show_header=True)
        table.add_column("Kind")
        table.add_column("Items", justify="right")
        for s in stats:
            table.add_row(str(s.kind), str(s.count))
        console.print(table)


@main.command("init")
@click.option("-f", "--force", is_flag=True, help="Overwrite an existing config")
@click.pass_obj
def init(ctx: CliContext, force: bool) -> None:
    """Write an example config file."""
    path = ctx.config_path
    if path.exists() and not force:
        fail(f"Config already exists at {path} (use -f to overwrite)")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_CONFIG_TEMPLATE)
    except OSError as e:
        fail(PaiIOError(f"Failed to write {path}: {e}"))

    console.print(f"[green]Wrote config to {escape(str(path))}[/green]")


if __name__ == "__main__":
    main()
