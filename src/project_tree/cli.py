"""CLI for the project tree (browse, edit, sync, MCP server)."""

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from project_tree.config import resolve_data_directory
from project_tree.core.tree.navigation import recent_projects, render_tree
from project_tree.core.tree.serialize import dump_tree
from project_tree.errors import CycleError, InvalidParent, NotFound, PersistenceError, SyncError
from project_tree.logging_config import configure_logging
from project_tree.workspace import Workspace

app = typer.Typer(help="Project tree: organize projects and folders, sync them remotely.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Workspace database directory"),
]
ParentOption = Annotated[
    str | None,
    typer.Option("--parent", "-p", help="Parent folder id (default: root)"),
]
IndexOption = Annotated[
    int | None,
    typer.Option("--index", "-i", help="Position among siblings (default: last)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@contextmanager
def _open_workspace(data_dir: Path | None) -> Iterator[Workspace]:
    """Open the workspace; structural errors become exit code 1."""
    try:
        ws = Workspace.open(data_dir or resolve_data_directory())
    except PersistenceError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    try:
        yield ws
    except (CycleError, InvalidParent, NotFound) as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    finally:
        asyncio.run(ws.close())


@app.command()
def show(
    data_dir: DataDirOption = None,
    ids: bool = typer.Option(False, "--ids", help="Show node ids"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Print the project tree."""
    with _open_workspace(data_dir) as ws:
        if output_json:
            typer.echo(json.dumps(dump_tree(ws.store.tree), indent=2))
        else:
            typer.echo(render_tree(ws.store.tree, show_ids=ids) or "(empty workspace)")


@app.command(name="add-folder")
def add_folder(
    name: str = typer.Argument(..., help="Folder name"),
    parent: ParentOption = None,
    index: IndexOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Create a folder."""
    with _open_workspace(data_dir) as ws:
        node_id = ws.store.add_folder(name, parent, index)
        typer.echo(node_id)


@app.command(name="add-project")
def add_project(
    name: str = typer.Argument(..., help="Project name"),
    parent: ParentOption = None,
    index: IndexOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Create a project."""
    with _open_workspace(data_dir) as ws:
        node_id = ws.store.add_project(name, parent, index)
        typer.echo(node_id)


@app.command()
def move(
    node_id: str = typer.Argument(..., help="Node to move"),
    parent: ParentOption = None,
    index: IndexOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Move a node under another folder (or to the root)."""
    with _open_workspace(data_dir) as ws:
        ws.store.move_node(node_id, parent, index)
        typer.echo(f"Moved {node_id} to {parent or 'root'}")


@app.command()
def rename(
    node_id: str = typer.Argument(..., help="Node to rename"),
    name: str = typer.Argument(..., help="New name"),
    data_dir: DataDirOption = None,
) -> None:
    """Rename a folder or project."""
    with _open_workspace(data_dir) as ws:
        ws.store.rename_node(node_id, name)
        typer.echo(f"Renamed {node_id} to {name!r}")


@app.command()
def delete(
    node_id: str = typer.Argument(..., help="Node to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a node and everything inside it."""
    with _open_workspace(data_dir) as ws:
        node = ws.store.get(node_id)
        if not yes and not typer.confirm(f"Delete {node.name!r} and everything inside it?"):
            raise typer.Abort()
        removed = ws.store.delete_node(node_id)
        typer.echo(f"Deleted {len(removed)} node(s)")


@app.command()
def recent(
    limit: int = typer.Option(20, "--limit", "-n", help="Max results"),
    data_dir: DataDirOption = None,
) -> None:
    """Show recently modified projects."""
    with _open_workspace(data_dir) as ws:
        for node in recent_projects(ws.store.tree, limit):
            if node.last_modified:
                dt = datetime.fromtimestamp(node.last_modified / 1000, tz=UTC)
                when = f"{dt:%Y-%m-%d %H:%M}"
            else:
                when = "never"
            typer.echo(f"  {node.name[:60]}")
            typer.echo(f"    {when}  id={node.id}")


@app.command()
def sync(
    project: Annotated[
        str | None,
        typer.Option("--project", "-P", help="Only sync this project id"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Reconcile projects with the remote record store."""
    from project_tree.remote.api import RecordApi
    from project_tree.remote.store import HttpRecordStore

    try:
        remote = HttpRecordStore(RecordApi())
    except SyncError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e

    try:
        ws = Workspace.open(data_dir or resolve_data_directory(), remote, signed_in=True)
    except PersistenceError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    engine = ws.sync
    if engine is None:
        logger.error("Remote sync is not available for this workspace")
        raise typer.Exit(1)

    async def _run() -> None:
        try:
            if project:
                ws.store.get_leaf(project)
                engine.schedule(project)
                await engine.flush()
            else:
                await engine.sync_all()
        finally:
            await ws.close()

    try:
        asyncio.run(_run())
    except NotFound as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e

    failed = sorted(engine.failed)
    if failed:
        typer.echo(f"Sync failed for {len(failed)} project(s): {', '.join(failed)}")
        raise typer.Exit(1)
    typer.echo("Sync complete")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from project_tree.mcp.server import run_mcp_server

    run_mcp_server()
