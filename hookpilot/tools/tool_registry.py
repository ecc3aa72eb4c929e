"""
hookpilot/tools/tool_registry.py
Central registry of tool names, schemas, and executors exposed to the agent.

Every declared schema must map to exactly one registered executor; the
default dispatcher verifies this when it is built.
"""

from typing import Any

from hookpilot.tools import fs_tools, github_tools, http_tools
from hookpilot.tools.dispatcher import ToolDispatcher, ToolHandler, ToolSpec


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_REPO = {
    "owner": {"type": "string", "description": "Repository owner"},
    "repo": {"type": "string", "description": "Repository name"},
}

# ---------------------------------------------------------------------------
# GITHUB tools
# ---------------------------------------------------------------------------
GITHUB_TOOL_DECLARATIONS: list[dict[str, Any]] = [
    {
        "name": "GITHUB_GET_ISSUE",
        "description": "Get details of a GitHub issue",
        "parameters": _object(
            {**_REPO, "issue_number": {"type": "integer", "description": "Issue number"}},
            ["owner", "repo", "issue_number"],
        ),
    },
    {
        "name": "GITHUB_CREATE_COMMENT",
        "description": "Create a comment on an issue or pull request",
        "parameters": _object(
            {
                **_REPO,
                "issue_number": {"type": "integer", "description": "Issue or pull request number"},
                "body": {"type": "string", "description": "Comment content (Markdown)"},
            },
            ["owner", "repo", "issue_number", "body"],
        ),
    },
    {
        "name": "GITHUB_CREATE_PULL_REQUEST",
        "description": "Create a new pull request",
        "parameters": _object(
            {
                **_REPO,
                "title": {"type": "string"},
                "body": {"type": "string"},
                "head": {"type": "string", "description": "Branch with changes"},
                "base": {"type": "string", "description": "Target branch"},
            },
            ["owner", "repo", "title", "head", "base"],
        ),
    },
    {
        "name": "GITHUB_GET_FILE_CONTENT",
        "description": "Get content of a file from the repository",
        "parameters": _object(
            {
                **_REPO,
                "path": {"type": "string", "description": "File path in repo"},
                "ref": {"type": "string", "description": "Branch or commit SHA"},
            },
            ["owner", "repo", "path"],
        ),
    },
    {
        "name": "GITHUB_LIST_FILES",
        "description": "List files in a repository directory",
        "parameters": _object(
            {
                **_REPO,
                "path": {"type": "string", "description": "Directory path (empty for root)"},
                "ref": {"type": "string", "description": "Branch or commit SHA"},
            },
            ["owner", "repo"],
        ),
    },
]

# ---------------------------------------------------------------------------
# FILESYSTEM tools (workspace-confined)
# ---------------------------------------------------------------------------
FS_TOOL_DECLARATIONS: list[dict[str, Any]] = [
    {
        "name": "FS_READ_FILE",
        "description": "Read a file from the local workspace",
        "parameters": _object({"path": {"type": "string", "description": "Workspace-relative path"}}, ["path"]),
    },
    {
        "name": "FS_WRITE_FILE",
        "description": "Write content to a file in the local workspace",
        "parameters": _object(
            {"path": {"type": "string"}, "content": {"type": "string"}},
            ["path", "content"],
        ),
    },
    {
        "name": "FS_LIST_DIRECTORY",
        "description": "List entries of a workspace directory",
        "parameters": _object({"path": {"type": "string"}}, ["path"]),
    },
]

# ---------------------------------------------------------------------------
# HTTP tools
# ---------------------------------------------------------------------------
HTTP_TOOL_DECLARATIONS: list[dict[str, Any]] = [
    {
        "name": "HTTP_GET",
        "description": "Make an HTTP GET request",
        "parameters": _object(
            {"url": {"type": "string"}, "headers": {"type": "object"}, "timeout": {"type": "number"}},
            ["url"],
        ),
    },
    {
        "name": "HTTP_POST",
        "description": "Make an HTTP POST request",
        "parameters": _object(
            {
                "url": {"type": "string"},
                "body": {"type": "object"},
                "headers": {"type": "object"},
                "timeout": {"type": "number"},
            },
            ["url"],
        ),
    },
]

TOOL_DECLARATIONS: list[dict[str, Any]] = GITHUB_TOOL_DECLARATIONS + FS_TOOL_DECLARATIONS + HTTP_TOOL_DECLARATIONS

TOOL_HANDLERS: dict[str, ToolHandler] = {
    "GITHUB_GET_ISSUE": github_tools.get_issue,
    "GITHUB_CREATE_COMMENT": github_tools.create_comment,
    "GITHUB_CREATE_PULL_REQUEST": github_tools.create_pull_request,
    "GITHUB_GET_FILE_CONTENT": github_tools.get_file_content,
    "GITHUB_LIST_FILES": github_tools.list_files,
    "FS_READ_FILE": fs_tools.read_file,
    "FS_WRITE_FILE": fs_tools.write_file,
    "FS_LIST_DIRECTORY": fs_tools.list_directory,
    "HTTP_GET": http_tools.get,
    "HTTP_POST": http_tools.post,
}


def build_dispatcher(
    declarations: list[dict[str, Any]],
    handlers: dict[str, ToolHandler],
    *,
    timeout_seconds: float | None = None,
) -> ToolDispatcher:
    """
    Register each declaration with its handler and verify the mapping.

    Raises:
        ToolRegistrationError: Duplicate names or declarations without handlers.
    """
    dispatcher = ToolDispatcher(timeout_seconds=timeout_seconds)
    for declaration in declarations:
        handler = handlers.get(declaration["name"])
        if handler is None:
            continue
        dispatcher.register(
            ToolSpec(
                name=declaration["name"],
                description=declaration.get("description", ""),
                parameters=declaration.get("parameters", _object({}, [])),
                handler=handler,
            )
        )
    dispatcher.verify(declaration["name"] for declaration in declarations)
    return dispatcher


def build_default_dispatcher(timeout_seconds: float | None = None) -> ToolDispatcher:
    return build_dispatcher(TOOL_DECLARATIONS, TOOL_HANDLERS, timeout_seconds=timeout_seconds)
