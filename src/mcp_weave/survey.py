"""Read-only status of every agent's configured MCP servers, secrets masked.

Reads run concurrently: they never mutate, have no ordering requirement,
and share no state. A broken file is reported on its own agent only.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from mcp_weave.config.reader import aload_document, list_server_entries
from mcp_weave.errors import McpWeaveError
from mcp_weave.models import AgentDescriptor, AgentStatus, ServerStatus
from mcp_weave.redaction import redact

logger = logging.getLogger(__name__)

_LOCAL_ENDPOINT = "Local (STDIO)"
_UNKNOWN = "N/A"


def _non_empty_str(value: object) -> bool:
    return isinstance(value, str) and len(value) > 0


def infer_transport(entry: dict[str, Any]) -> str:
    """Explicit ``transport``/``type`` field, else guessed from which fields are present."""
    explicit = entry.get("transport") or entry.get("type")
    if _non_empty_str(explicit):
        return str(explicit)
    if _non_empty_str(entry.get("command")):
        return "stdio"
    if _non_empty_str(entry.get("httpUrl")):
        return "http"
    if _non_empty_str(entry.get("url")):
        return "sse"
    return _UNKNOWN


def has_problem(entry: dict[str, Any]) -> bool:
    """True when the field required by the entry's transport is missing."""
    transport = infer_transport(entry)
    if transport == "stdio":
        return not _non_empty_str(entry.get("command"))
    if transport == "http":
        return not (_non_empty_str(entry.get("httpUrl")) or _non_empty_str(entry.get("url")))
    if transport == "sse":
        return not _non_empty_str(entry.get("url"))
    return False


def server_status(server_id: str, entry: dict[str, Any]) -> ServerStatus:
    """Build the redacted status of one server entry."""
    transport = infer_transport(entry)
    if transport == "stdio":
        endpoint = _LOCAL_ENDPOINT
    else:
        endpoint = str(entry.get("httpUrl") or entry.get("url") or _UNKNOWN)
    return ServerStatus(
        server_id=server_id,
        config=redact(entry),
        transport=transport,
        endpoint=endpoint,
        enabled=entry.get("disabled") is not True,
        problem=has_problem(entry),
    )


async def read_agent_status(agent: AgentDescriptor) -> AgentStatus:
    """Status of one agent. Never raises for unreadable files."""
    path = Path(agent.config_path)
    if not path.exists():
        return AgentStatus(name=agent.name, config_path=agent.config_path, exists=False)

    try:
        document = await aload_document(path, agent.format)
    except McpWeaveError as exc:
        logger.warning("Cannot read %s config: %s", agent.name, exc)
        return AgentStatus(
            name=agent.name,
            config_path=agent.config_path,
            exists=True,
            error=str(exc),
        )

    servers = [
        server_status(server_id, entry)
        for server_id, entry in list_server_entries(document, agent.server_map_key)
    ]
    return AgentStatus(name=agent.name, config_path=agent.config_path, exists=True, servers=servers)


async def survey_agents(
    agents: Iterable[AgentDescriptor],
    *,
    only_problems: bool = False,
) -> list[AgentStatus]:
    """Read every agent concurrently; results keep the input order."""
    statuses = await asyncio.gather(*(read_agent_status(a) for a in agents))
    if only_problems:
        return [s for s in statuses if s.has_problems]
    return list(statuses)
