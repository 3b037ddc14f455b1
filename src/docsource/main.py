import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.table import Table
from rich.tree import Tree

from docsource.config import get_settings
from docsource.core.models import IngestReport
from docsource.core.options import create_config_file, load_source_options
from docsource.core.sidebar import SIDEBAR_TYPE
from docsource.core.source import DocumentationSource
from docsource.core.store import MemoryContentStore
from docsource.errors import ConfigurationError

logger = logging.getLogger(__name__)

APP_HELP = """
docsource: turn a documentation tree into a typed content graph.

Directory depth under the base directory sets node metadata:
  <version>/<file>            -> version
  <version>/<section>/<file>  -> version + section

Sidebars are built per version from [source.sidebar_order] in docsource.toml,
ordered by each page's frontmatter 'weight'.
"""

app = typer.Typer(name="docsource", help=APP_HELP, no_args_is_help=True)


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_source(config: Optional[Path]) -> DocumentationSource:
    try:
        return DocumentationSource(load_source_options(config))
    except ConfigurationError as e:
        print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=2)


def _print_report(store: MemoryContentStore, report: IngestReport) -> None:
    table = Table(title="Content graph")
    table.add_column("Collection", style="cyan")
    table.add_column("Nodes", justify="right")
    table.add_column("Route")
    for name, collection in store.collections.items():
        table.add_row(name, str(len(collection)), collection.route or "-")
    print(table)

    summary = report.summary()
    print(
        f"Discovered [bold]{summary['discovered']}[/bold] files, "
        f"registered [green]{summary['registered']}[/green], "
        f"failed [red]{summary['failed']}[/red]"
    )
    for error in report.errors:
        print(f"  [red]✗[/red] {error.relative_path}: {error.cause}")


@app.command()
def init(
    path: str = typer.Option("**/*.md", "--path", help="Glob pattern selecting source files"),
    type_name: str = typer.Option("DocPage", "--type-name", help="Graph type name for produced nodes"),
):
    """
    Create a starter docsource.toml in the current directory.
    """
    target = Path.cwd() / get_settings().config_file
    if target.exists():
        print(f"[yellow]{target.name} already exists.[/yellow]")
        raise typer.Exit(code=1)
    create_config_file(Path.cwd(), pattern=path, type_name=type_name)
    print(f"[green]Created {target}[/green]")


@app.command()
def build(
    config: Path = typer.Option(None, "--config", "-c", help="Path to docsource.toml (searched upward by default)"),
    json_output: bool = typer.Option(False, "--json", help="Dump every collection as JSON"),
):
    """
    Ingest the documentation tree and build sidebars once.

    Exits with code 1 when any matched file could not be read.
    """
    _configure_logging()
    source = _load_source(config)
    store = MemoryContentStore()
    report = asyncio.run(source.load_source(store, watch=False))

    if json_output:
        typer.echo(json.dumps(store.dump(), indent=2, default=str))
    else:
        _print_report(store, report)

    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def sidebar(
    config: Path = typer.Option(None, "--config", "-c", help="Path to docsource.toml"),
    version: str = typer.Option(None, "--version", "-v", help="Only show this version"),
):
    """
    Show the per-version sidebars as a tree.
    """
    _configure_logging()
    source = _load_source(config)
    store = MemoryContentStore()
    asyncio.run(source.load_source(store, watch=False))

    sidebars = store.get_collection(SIDEBAR_TYPE).query({"id": version} if version else None)
    if not sidebars:
        print("[yellow]No sidebar entries.[/yellow]")
        return

    for entry in sidebars:
        tree = Tree(f"[bold]{entry.id}[/bold]")
        for section in entry.sections:
            branch = tree.add(f"[cyan]{section.title}[/cyan]")
            for item in section.items:
                branch.add(item)
        print(tree)


@app.command()
def develop(
    config: Path = typer.Option(None, "--config", "-c", help="Path to docsource.toml"),
):
    """
    Build, then keep the graph in sync with the filesystem until interrupted.
    """
    _configure_logging()
    source = _load_source(config)
    store = MemoryContentStore()

    async def run() -> None:
        try:
            report = await source.load_source(store, watch=True)
            _print_report(store, report)
            print("[bold blue]Watching for changes (Ctrl+C to stop)...[/bold blue]")
            await asyncio.Event().wait()
        finally:
            source.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("Stopped.")


if __name__ == "__main__":
    app()
