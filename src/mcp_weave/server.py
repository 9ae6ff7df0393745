"""MCP server that writes one MCP server definition into many agent configs."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from mcp_weave.models import ToolCatalog
from mcp_weave.resolver.catalog import load_catalog
from mcp_weave.settings import Settings
from mcp_weave.tools.catalog import list_stdio_tools
from mcp_weave.tools.configure import configure_server
from mcp_weave.tools.status import agent_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state across all tool invocations.

    Config reading/writing and agent detection stay direct module imports;
    only what is loaded once per process lives here.
    """

    settings: Settings
    catalog: ToolCatalog

    @property
    def fallback_prefixes(self) -> list[str]:
        """Environment override when set, else the catalog's list."""
        return self.settings.fallback_prefixes or self.catalog.fallback_prefixes


def build_app_context(settings: Settings | None = None) -> AppContext:
    settings = settings or Settings.from_env()
    catalog = load_catalog(settings.tools_catalog or None)
    logger.debug("Loaded %d STDIO tool(s) into the catalog", len(catalog.tools))
    return AppContext(settings=settings, catalog=catalog)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Read settings and the tool catalog once: the composition root."""
    yield build_app_context()


mcp = FastMCP(
    "mcp-weave",
    instructions=(
        "mcp-weave keeps MCP server definitions in step across AI coding agents "
        "(Gemini CLI, Cursor, Claude Code, Windsurf, Codex CLI).\n\n"
        "## Tools\n"
        "- **agent_status** — Show which agents are configured and which MCP "
        "servers each one has (secrets masked). Use problems=True to list only "
        "broken entries. Start here.\n"
        "- **configure_server** — Describe a server once (http, sse, or stdio) "
        "and write it to one, many, or all agents in a single all-or-nothing "
        "transaction. If any agent file fails, every file already changed is "
        "restored. Use dry_run=True first to preview the change.\n"
        "- **list_stdio_tools** — Local MCP server tools that configure_server "
        "can install and wire up via tool_id.\n\n"
        "## Key principles\n"
        "- Secrets are never shown in full; tokens appear as '****' plus the "
        "last four characters.\n"
        "- Codex CLI only runs local servers; remote servers are bridged to it "
        "automatically through a local proxy.\n"
        "- Per-agent transport differences go in transport_overrides, e.g. "
        "'Claude Code=sse'."
    ),
    lifespan=app_lifespan,
)

# ─── Read-only tools ──────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(agent_status)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(list_stdio_tools)

# ─── Destructive tools ────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(configure_server)
