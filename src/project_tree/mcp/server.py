"""MCP server exposing project tree browsing and editing tools."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from project_tree.config import resolve_data_directory
from project_tree.core.tree.navigation import recent_projects
from project_tree.core.tree.serialize import dump_component
from project_tree.errors import CycleError, InvalidParent, NotFound
from project_tree.models.node import FOLDER, LEAF, Tree
from project_tree.workspace import Workspace

_STRUCTURAL_ERRORS = (CycleError, InvalidParent, NotFound)


def _node_entry(tree: Tree, node_id: str, remaining_depth: int | None) -> dict[str, Any]:
    node = tree.items[node_id]
    entry: dict[str, Any] = {"id": node.id, "name": node.name, "kind": node.kind}
    if node.is_folder:
        entry["child_count"] = len(node.children)
        if remaining_depth is None or remaining_depth > 1:
            next_depth = None if remaining_depth is None else remaining_depth - 1
            entry["children"] = [_node_entry(tree, c, next_depth) for c in node.children]
    else:
        entry["component_count"] = len(node.components)
        entry["last_modified"] = node.last_modified
    return entry


# --- Core functions (testable without MCP context) ---


def project_tree_show(
    ws: Workspace, *, folder_id: str | None = None, max_depth: int | None = None
) -> dict[str, Any]:
    """Return the tree (or one folder's subtree) as nested JSON.

    Args:
        folder_id: Folder to start from (None = whole workspace).
        max_depth: Max depth levels (None = unlimited).
    """
    tree = ws.store.tree
    if folder_id is not None:
        node = tree.items.get(folder_id)
        if node is None or not node.is_folder:
            return {"error": f"Folder '{folder_id}' not found."}
        top = node.children
    else:
        top = tree.root_ids
    return {
        "nodes": [_node_entry(tree, node_id, max_depth) for node_id in top],
        "count": len(tree.items),
    }


def project_tree_add(
    ws: Workspace,
    *,
    kind: str,
    name: str,
    parent_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Add a folder or project.

    Args:
        kind: "folder" or "project".
        name: Display name.
        parent_id: Parent folder id (None = root).
        index: Position among siblings (None = last).
    """
    node_kind = {"folder": FOLDER, "project": LEAF, "leaf": LEAF}.get(kind)
    if node_kind is None:
        return {"success": False, "error": f"Unknown kind '{kind}'."}
    try:
        node_id = ws.store.add_node(node_kind, name, parent_id, index)
    except _STRUCTURAL_ERRORS as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "node_id": node_id}


def project_tree_move(
    ws: Workspace, *, node_id: str, parent_id: str | None = None, index: int | None = None
) -> dict[str, Any]:
    """Move a node under another folder (or the root)."""
    try:
        ws.store.move_node(node_id, parent_id, index)
    except _STRUCTURAL_ERRORS as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "node_id": node_id, "parent_id": parent_id}


def project_tree_rename(ws: Workspace, *, node_id: str, name: str) -> dict[str, Any]:
    try:
        ws.store.rename_node(node_id, name)
    except _STRUCTURAL_ERRORS as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "node_id": node_id}


def project_tree_delete(ws: Workspace, *, node_id: str) -> dict[str, Any]:
    try:
        removed = ws.store.delete_node(node_id)
    except _STRUCTURAL_ERRORS as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "removed": removed}


def project_tree_read_project(ws: Workspace, *, project_id: str) -> dict[str, Any]:
    """Return one project's components and sync status."""
    try:
        node = ws.store.get_leaf(project_id)
    except NotFound as e:
        return {"error": str(e)}
    return {
        "id": node.id,
        "name": node.name,
        "parent_id": node.parent_id,
        "last_modified": node.last_modified,
        "components": [dump_component(c) for c in node.components],
        "sync_status": ws.status.leaf_state(node.id),
    }


def project_tree_recent(ws: Workspace, *, limit: int = 20) -> dict[str, Any]:
    limit = max(1, min(limit, 100))
    nodes = recent_projects(ws.store.tree, limit)
    return {
        "results": [
            {"id": n.id, "name": n.name, "last_modified": n.last_modified} for n in nodes
        ],
        "count": len(nodes),
    }


# --- MCP server setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    workspace: Workspace


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the workspace on startup, close on shutdown."""
    data_dir = resolve_data_directory()
    ws = Workspace.open(data_dir)
    logger.info("Serving workspace at {}", data_dir)
    try:
        yield ServerContext(workspace=ws)
    finally:
        await ws.close()


mcp_server = FastMCP(
    "project-tree",
    instructions="""\
The workspace is a tree of folders and projects. Projects hold an ordered list
of components; folders only group and order their children.

Use project_tree_show_tool to see ids before moving, renaming or deleting.
Deleting a folder deletes everything inside it.
""",
    lifespan=server_lifespan,
)


def _ws(mcp_ctx: Context) -> Workspace:
    return mcp_ctx.request_context.lifespan_context.workspace  # type: ignore[no-any-return]


@mcp_server.tool()
async def project_tree_show_tool(
    ctx: Context, folder_id: str | None = None, max_depth: int | None = None
) -> dict[str, Any]:
    """Show the workspace tree as nested JSON.

    Args:
        folder_id: Folder to start from (omit for the whole workspace).
        max_depth: Max depth levels (None = unlimited).
    """
    return project_tree_show(_ws(ctx), folder_id=folder_id, max_depth=max_depth)


@mcp_server.tool()
async def project_tree_add_tool(
    ctx: Context,
    kind: str,
    name: str,
    parent_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Add a folder or project.

    Args:
        kind: "folder" or "project".
        name: Display name.
        parent_id: Parent folder id (omit for root).
        index: Position among siblings (omit for last).
    """
    return project_tree_add(_ws(ctx), kind=kind, name=name, parent_id=parent_id, index=index)


@mcp_server.tool()
async def project_tree_move_tool(
    ctx: Context, node_id: str, parent_id: str | None = None, index: int | None = None
) -> dict[str, Any]:
    """Move a node into a folder (or to the root) at a given position.

    Args:
        node_id: Node to move.
        parent_id: Target folder id (omit for root).
        index: Position among the target's children (omit for last).
    """
    return project_tree_move(_ws(ctx), node_id=node_id, parent_id=parent_id, index=index)


@mcp_server.tool()
async def project_tree_rename_tool(ctx: Context, node_id: str, name: str) -> dict[str, Any]:
    """Rename a folder or project."""
    return project_tree_rename(_ws(ctx), node_id=node_id, name=name)


@mcp_server.tool()
async def project_tree_delete_tool(ctx: Context, node_id: str) -> dict[str, Any]:
    """Delete a node and everything inside it."""
    return project_tree_delete(_ws(ctx), node_id=node_id)


@mcp_server.tool()
async def project_tree_read_project_tool(ctx: Context, project_id: str) -> dict[str, Any]:
    """Read a project's components and sync status."""
    return project_tree_read_project(_ws(ctx), project_id=project_id)


@mcp_server.tool()
async def project_tree_recent_tool(ctx: Context, limit: int = 20) -> dict[str, Any]:
    """List recently modified projects, newest first."""
    return project_tree_recent(_ws(ctx), limit=limit)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from project_tree.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
