"""Generic outbound HTTP executors."""

from typing import Any
from urllib.parse import urlparse

import httpx

from hookpilot.config import Config
from hookpilot.tools.dispatcher import ToolError

DEFAULT_TIMEOUT_SECONDS = 30.0
MAX_BODY_CHARS = 20_000


def validate_url(url: Any) -> str:
    """
    Check scheme and optional host allow-list (HOOKPILOT_HTTP_ALLOWED_HOSTS).

    Raises:
        ToolError: Invalid URL or host not allowed.
    """
    if not isinstance(url, str) or not url.strip():
        raise ToolError("Missing required argument: url")
    parsed = urlparse(url.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ToolError(f"Invalid URL: {url}")
    allowed = Config.get_http_allowed_hosts()
    if allowed and parsed.hostname.lower() not in allowed:
        raise ToolError(f"Host not allowed: {parsed.hostname}")
    return url.strip()


def _headers(args: dict[str, Any]) -> dict[str, str]:
    headers = args.get("headers") or {}
    if not isinstance(headers, dict):
        raise ToolError("headers must be an object")
    return {str(key): str(value) for key, value in headers.items()}


def _timeout(args: dict[str, Any]) -> float:
    try:
        return float(args.get("timeout") or DEFAULT_TIMEOUT_SECONDS)
    except (TypeError, ValueError) as exc:
        raise ToolError("timeout must be a number of seconds") from exc


def _build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def _to_result(response: httpx.Response) -> dict[str, Any]:
    try:
        body: Any = response.json()
    except ValueError:
        text = response.text
        body = text if len(text) <= MAX_BODY_CHARS else f"{text[:MAX_BODY_CHARS]}..."
    return {
        "status": response.status_code,
        "ok": response.is_success,
        "headers": dict(response.headers),
        "body": body,
    }


async def _send(method: str, args: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    url = validate_url(args.get("url"))
    try:
        async with _build_client(_timeout(args)) as client:
            response = await client.request(method, url, headers=_headers(args), **kwargs)
    except httpx.HTTPError as exc:
        raise ToolError(f"{method} {url} failed: {exc}") from exc
    return _to_result(response)


async def get(args: dict[str, Any]) -> dict[str, Any]:
    return await _send("GET", args)


async def post(args: dict[str, Any]) -> dict[str, Any]:
    body = args.get("body")
    if isinstance(body, (dict, list)):
        return await _send("POST", args, json=body)
    return await _send("POST", args, content=str(body) if body is not None else None)
