"""Filesystem executors confined to the configured workspace directory."""

import asyncio
from pathlib import Path
from typing import Any

from hookpilot.config import Config
from hookpilot.tools.dispatcher import ToolError

MAX_READ_BYTES = 1_000_000


def workspace_root() -> Path:
    root = Path(Config.get_workspace_dir()).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def resolve_workspace_path(raw_path: Any, root: Path | None = None) -> Path:
    """
    Resolve a user-supplied path inside the workspace.

    Raises:
        ToolError: Empty path or a path escaping the workspace.
    """
    if not isinstance(raw_path, str) or not raw_path.strip():
        raise ToolError("Missing required argument: path")
    base = root or workspace_root()
    candidate = (base / raw_path.strip()).resolve()
    if candidate != base and not candidate.is_relative_to(base):
        raise ToolError(f"Path traversal detected: {raw_path}")
    return candidate


def _read(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ToolError(f"File not found: {path.name}")
    size = path.stat().st_size
    if size > MAX_READ_BYTES:
        raise ToolError(f"File too large to read ({size} bytes).")
    return {"content": path.read_text(encoding="utf-8", errors="replace"), "size": size}


def _write(path: Path, content: str) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path.write_text(content, encoding="utf-8")


def _list(path: Path) -> list[dict[str, Any]]:
    if not path.is_dir():
        raise ToolError(f"Directory not found: {path.name}")
    entries = []
    for child in sorted(path.iterdir(), key=lambda item: item.name):
        entries.append(
            {
                "name": child.name,
                "type": "dir" if child.is_dir() else "file",
                "size": child.stat().st_size if child.is_file() else 0,
            }
        )
    return entries


async def read_file(args: dict[str, Any]) -> dict[str, Any]:
    root = workspace_root()
    path = resolve_workspace_path(args.get("path"), root)
    result = await asyncio.to_thread(_read, path)
    return {"path": str(path.relative_to(root)), **result}


async def write_file(args: dict[str, Any]) -> dict[str, Any]:
    root = workspace_root()
    path = resolve_workspace_path(args.get("path"), root)
    content = args.get("content")
    if not isinstance(content, str):
        raise ToolError("Missing required argument: content")
    written = await asyncio.to_thread(_write, path, content)
    return {"path": str(path.relative_to(root)), "bytes_written": written}


async def list_directory(args: dict[str, Any]) -> dict[str, Any]:
    root = workspace_root()
    path = resolve_workspace_path(args.get("path") or ".", root)
    entries = await asyncio.to_thread(_list, path)
    return {"path": str(path.relative_to(root)) or ".", "entries": entries}
