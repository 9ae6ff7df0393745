"""Helpers shared by the MCP tool functions."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

if TYPE_CHECKING:
    from mcp_weave.server import AppContext


def get_context(ctx: Context) -> AppContext:
    """Extract AppContext from FastMCP's lifespan context.

    Raises TypeError if the lifespan context is not an AppContext instance,
    which means the server was built without app_lifespan.
    """
    from mcp_weave.server import AppContext

    app = ctx.request_context.lifespan_context
    if not isinstance(app, AppContext):
        msg = (
            f"Expected AppContext in lifespan_context, got {type(app).__name__}. "
            "Is the server configured with app_lifespan?"
        )
        raise TypeError(msg)
    return app


def split_pairs(value: str, separator: str) -> list[tuple[str, str]]:
    """Parse comma-separated ``KEY<sep>VALUE`` pairs.

    Splits only on commas followed by a new ``KEY<sep>``, so values that
    contain plain commas (``HOSTS=a,b``) or URLs (``Ref: a, https://b``)
    stay intact. Items without a separator are ignored.
    """
    if not value or not value.strip():
        return []
    key_start = rf",(?=\s*[A-Za-z_][A-Za-z0-9_\- ]*\s*{re.escape(separator)}(?!//))"
    pairs: list[tuple[str, str]] = []
    for item in re.split(key_start, value):
        item = item.strip()
        if separator not in item:
            continue
        key, raw = item.split(separator, 1)
        if key.strip():
            pairs.append((key.strip(), raw.strip()))
    return pairs
