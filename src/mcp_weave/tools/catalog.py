"""list_stdio_tools tool -- local MCP server tools configure_server can set up."""

from __future__ import annotations

from mcp.server.fastmcp import Context

from mcp_weave.resolver.tools import detect_tool
from mcp_weave.tools._helpers import get_context


async def list_stdio_tools(ctx: Context) -> list[dict[str, object]]:
    """List the catalog of local (STDIO) MCP server tools.

    Pass a tool's ``id`` as ``tool_id`` to configure_server with
    ``transport="stdio"`` to install it if needed and write its launch
    command into agent configs.

    Returns:
        One item per tool with: id, bin, installed, command (what would be
        detected on PATH), discovery commands, and env_vars the tool needs
        (key, label, secret, optional).
    """
    try:
        app = get_context(ctx)
        items: list[dict[str, object]] = []
        for tool in app.catalog.tools:
            detection = detect_tool(tool)
            items.append(
                {
                    "id": tool.id,
                    "bin": tool.bin,
                    "installed": detection.installed,
                    "command": detection.command,
                    "discovery": list(tool.discovery_commands),
                    "env_vars": [
                        {
                            "key": p.key,
                            "label": p.label,
                            "secret": p.secret,
                            "optional": p.optional,
                        }
                        for p in tool.env_prompts
                    ],
                }
            )
        return items
    except Exception as exc:
        await ctx.error(f"Unexpected error in list_stdio_tools: {exc}")
        return [{"success": False, "error": f"Internal error: {type(exc).__name__}"}]
