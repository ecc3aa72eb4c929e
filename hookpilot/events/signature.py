"""GitHub webhook HMAC-SHA256 signature verification."""

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_github_signature(body: bytes, secret: str) -> str:
    """Return the `sha256=<hex>` signature GitHub sends for `body`."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_github_signature(body: bytes, header: str | None, secret: str) -> bool:
    """
    Check an X-Hub-Signature-256 header against the raw request body.

    Args:
        body: Raw request body bytes.
        header: Header value, e.g. `sha256=abc...`.
        secret: Shared webhook secret.
    Returns:
        True only when the header is well-formed and matches.
    """
    if not header or not header.startswith(SIGNATURE_PREFIX):
        return False
    expected = compute_github_signature(body, secret)
    return hmac.compare_digest(expected, header.strip())
