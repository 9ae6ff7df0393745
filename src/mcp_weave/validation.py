"""Canonical server spec invariants, checked once before any file is touched."""

from __future__ import annotations

from urllib.parse import urlparse

from mcp_weave.errors import ValidationError
from mcp_weave.models import CanonicalServerSpec, Transport

_DEFAULT_SERVER_ID = "default-server"


def is_valid_url(url: str) -> bool:
    """True for an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_spec(spec: CanonicalServerSpec) -> None:
    """Raise ValidationError if *spec* violates its invariants.

    - server_id must be non-empty
    - url required and well-formed iff transport is http/sse
    - command required iff transport is stdio
    - timeout_ms, when given, must be a positive integer
    """
    if not spec.server_id or not spec.server_id.strip():
        raise ValidationError("Server id is required. Pass a name for the MCP server.")

    try:
        transport = Transport(spec.transport)
    except ValueError:
        raise ValidationError(
            f"Unsupported transport '{spec.transport}'. Use one of: http, sse, stdio."
        ) from None

    if transport in (Transport.HTTP, Transport.SSE):
        if not spec.url:
            raise ValidationError(f"A server URL is required for {transport.value} transport.")
        if not is_valid_url(spec.url):
            raise ValidationError(f"Invalid MCP server endpoint URL: {spec.url}")
    elif not spec.command:
        raise ValidationError("A command is required for stdio transport.")

    if spec.timeout_ms is not None and (
        isinstance(spec.timeout_ms, bool)
        or not isinstance(spec.timeout_ms, int)
        or spec.timeout_ms <= 0
    ):
        raise ValidationError(f"Timeout must be a positive integer in ms, got {spec.timeout_ms!r}.")


def derive_server_id(url: str) -> str:
    """Use the last path segment of *url* as a server id, or a default."""
    if not is_valid_url(url):
        return _DEFAULT_SERVER_ID
    segments = [s for s in urlparse(url).path.split("/") if s]
    return segments[-1] if segments else _DEFAULT_SERVER_ID
