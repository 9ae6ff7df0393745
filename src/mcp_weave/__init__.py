"""mcp-weave: one MCP server description, every agent config kept in step."""

from __future__ import annotations

import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _distribution_version

_LOCAL_VERSION_FALLBACK = "0.0.0+local"


def _resolve_version() -> str:
    """Resolve package version from installed metadata with deterministic fallback."""
    try:
        return _distribution_version("mcp-weave")
    except PackageNotFoundError:
        return _LOCAL_VERSION_FALLBACK


__version__ = _resolve_version()


def _configure_logging(level: str) -> None:
    # stdout carries the MCP stdio protocol, so logs go to stderr.
    logging.basicConfig(
        stream=sys.stderr,
        level=level if level in logging.getLevelNamesMapping() else "WARNING",
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Entry point for `mcp-weave` CLI."""
    from mcp_weave.settings import Settings

    _configure_logging(Settings.from_env().log_level)

    from mcp_weave.server import mcp

    mcp.run(transport="stdio")
