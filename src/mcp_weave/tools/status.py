"""agent_status tool -- show every agent's configured MCP servers, secrets masked."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from mcp_weave.config.detection import all_agents, resolve_agents
from mcp_weave.errors import McpWeaveError
from mcp_weave.survey import survey_agents


async def agent_status(
    ctx: Context,
    agent: str = "",
    config_dir: str = "",
    problems: bool = False,
) -> list[dict[str, object]]:
    """List the MCP servers configured in each AI agent.

    Use this before configure_server to see what is already set up, or with
    ``problems=True`` to find entries missing the field their transport needs
    (a url for http/sse, a command for stdio).

    Tokens, API keys and Authorization headers are masked as "****" plus
    their last four characters.

    Args:
        agent: Comma-separated agent names to inspect. Empty inspects every
            supported agent, including those without a config file.
        config_dir: Project directory to read project-scoped configs from.
        problems: Only return agents with a broken entry or unreadable file.

    Returns:
        One item per agent with: name, config_path, exists, error, and
        servers (server_id, transport, endpoint, enabled, problem, config).
    """
    try:
        targets = resolve_agents(agent, config_dir=config_dir) if agent else all_agents(config_dir)
        statuses = await survey_agents(targets, only_problems=problems)
        items: list[dict[str, object]] = []
        for status in statuses:
            item = asdict(status)
            item["has_problems"] = status.has_problems
            items.append(item)
        return items
    except McpWeaveError as exc:
        return [{"success": False, "error": str(exc)}]
    except Exception as exc:
        await ctx.error(f"Unexpected error in agent_status: {exc}")
        return [{"success": False, "error": f"Internal error: {type(exc).__name__}"}]
