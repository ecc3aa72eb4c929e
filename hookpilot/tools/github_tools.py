"""GitHub REST executors: issues, comments, pull requests, repository contents."""

import base64
import os
from typing import Any

import httpx

from hookpilot.shared import _required_env
from hookpilot.tools.dispatcher import ToolError

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 20.0


def _github_token() -> str:
    """Return GITHUB_TOKEN (HOOKPILOT_GITHUB_TOKEN takes precedence)."""
    token = os.getenv("HOOKPILOT_GITHUB_TOKEN", "").strip()
    return token or _required_env("GITHUB_TOKEN")


def _build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=GITHUB_API_BASE,
        timeout=DEFAULT_TIMEOUT_SECONDS,
        headers={
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {_github_token()}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "hookpilot",
        },
    )


def _require(args: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if args.get(name) in (None, "")]
    if missing:
        raise ToolError(f"Missing required argument(s): {', '.join(missing)}")


async def _request(method: str, path: str, **kwargs: Any) -> Any:
    async with _build_client() as client:
        response = await client.request(method, path, **kwargs)
    if response.status_code >= 400:
        try:
            message = response.json().get("message", response.text)
        except (ValueError, AttributeError):
            message = response.text
        raise ToolError(f"GitHub API {method} {path} failed ({response.status_code}): {message}")
    return response.json() if response.content else {}


async def get_issue(args: dict[str, Any]) -> dict[str, Any]:
    _require(args, "owner", "repo", "issue_number")
    data = await _request("GET", f"/repos/{args['owner']}/{args['repo']}/issues/{args['issue_number']}")
    return {
        "number": data.get("number"),
        "title": data.get("title"),
        "body": data.get("body") or "",
        "state": data.get("state"),
        "labels": [label.get("name") for label in data.get("labels", []) if isinstance(label, dict)],
        "user": (data.get("user") or {}).get("login"),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
    }


async def create_comment(args: dict[str, Any]) -> dict[str, Any]:
    _require(args, "owner", "repo", "issue_number", "body")
    data = await _request(
        "POST",
        f"/repos/{args['owner']}/{args['repo']}/issues/{args['issue_number']}/comments",
        json={"body": args["body"]},
    )
    return {"id": data.get("id"), "html_url": data.get("html_url"), "body": data.get("body")}


async def create_pull_request(args: dict[str, Any]) -> dict[str, Any]:
    _require(args, "owner", "repo", "title", "head", "base")
    data = await _request(
        "POST",
        f"/repos/{args['owner']}/{args['repo']}/pulls",
        json={
            "title": args["title"],
            "body": args.get("body", ""),
            "head": args["head"],
            "base": args["base"],
        },
    )
    return {"number": data.get("number"), "html_url": data.get("html_url"), "state": data.get("state")}


async def get_file_content(args: dict[str, Any]) -> dict[str, Any]:
    _require(args, "owner", "repo", "path")
    params = {"ref": args["ref"]} if args.get("ref") else None
    data = await _request(
        "GET",
        f"/repos/{args['owner']}/{args['repo']}/contents/{str(args['path']).lstrip('/')}",
        params=params,
    )
    if not isinstance(data, dict) or data.get("type") != "file":
        raise ToolError(f"Path is not a file: {args['path']}")
    raw = data.get("content") or ""
    content = base64.b64decode(raw).decode("utf-8", errors="replace") if data.get("encoding") == "base64" else raw
    return {
        "name": data.get("name"),
        "path": data.get("path"),
        "sha": data.get("sha"),
        "size": data.get("size"),
        "content": content,
    }


async def list_files(args: dict[str, Any]) -> list[dict[str, Any]]:
    _require(args, "owner", "repo")
    path = str(args.get("path") or "").lstrip("/")
    params = {"ref": args["ref"]} if args.get("ref") else None
    data = await _request("GET", f"/repos/{args['owner']}/{args['repo']}/contents/{path}", params=params)
    entries = data if isinstance(data, list) else [data]
    return [
        {"name": entry.get("name"), "path": entry.get("path"), "type": entry.get("type"), "size": entry.get("size")}
        for entry in entries
        if isinstance(entry, dict)
    ]
