"""configure_server tool -- write one MCP server to many agents, all or nothing."""

from __future__ import annotations

import logging
from dataclasses import asdict

from mcp.server.fastmcp import Context

from mcp_weave.config.detection import canonical_agent_name, resolve_agents
from mcp_weave.errors import AgentNotFoundError, McpWeaveError, RollbackError, ValidationError
from mcp_weave.models import CanonicalServerSpec, ToolEntry, Transport, TransactionResult
from mcp_weave.redaction import redact_text
from mcp_weave.resolver.tools import resolve_invocation
from mcp_weave.tools._helpers import get_context, split_pairs
from mcp_weave.transaction.coordinator import ConfigTransaction
from mcp_weave.transaction.preview import preview_transaction
from mcp_weave.validation import derive_server_id

logger = logging.getLogger(__name__)


def _parse_transport(value: str, *, what: str = "transport") -> Transport:
    try:
        return Transport(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unsupported {what} '{value}'. Use one of: http, sse, stdio."
        ) from None


def _parse_env_vars(env_vars: str) -> dict[str, str]:
    """Parse ``"KEY=VALUE,KEY2=VALUE2"`` into a dict."""
    return dict(split_pairs(env_vars, "="))


def _parse_headers(headers: dict[str, str] | str | None) -> dict[str, str]:
    """Accept a mapping or ``"Name: value, Other: value"``."""
    if not headers:
        return {}
    if isinstance(headers, str):
        return dict(split_pairs(headers, ":"))
    return {str(k): str(v) for k, v in headers.items()}


def _with_bearer(headers: dict[str, str], bearer: str) -> dict[str, str]:
    """Add ``Authorization: Bearer <token>`` unless an Authorization header exists."""
    if not bearer:
        return headers
    if any(k.lower() == "authorization" for k in headers):
        return headers
    return {**headers, "Authorization": f"Bearer {bearer}"}


def _parse_overrides(transport_overrides: str) -> dict[str, Transport]:
    """Parse ``"Claude Code=sse,Cursor=http"`` into agent name -> transport.

    Raises:
        AgentNotFoundError: An override names an unknown agent.
        ValidationError: An override names an unknown transport.
    """
    overrides: dict[str, Transport] = {}
    for name, value in split_pairs(transport_overrides, "="):
        canonical = canonical_agent_name(name)
        if canonical is None:
            raise AgentNotFoundError(f"Unknown agent in transport override: {name}.")
        overrides[canonical] = _parse_transport(value, what=f"transport override for {canonical}")
    return overrides


def _missing_env_prompts(tool: ToolEntry, env: dict[str, str]) -> list[str]:
    """Required env prompt keys of *tool* that *env* does not provide."""
    return [p.key for p in tool.env_prompts if not p.optional and not env.get(p.key)]


def _result_dict(result: TransactionResult) -> dict[str, object]:
    data = asdict(result)
    data["error"] = redact_text(result.error)
    for item in data["results"]:
        item["error"] = redact_text(item["error"])
    if result.success:
        data["message"] = (
            f"Server '{result.server_id}' written to {len(result.results)} agent(s)."
        )
    else:
        data["message"] = (
            f"Writing server '{result.server_id}' failed at {result.failed_agent}; "
            f"reverted: {', '.join(result.reverted) or 'nothing'}."
        )
    return data


async def configure_server(
    server_id: str,
    ctx: Context,
    transport: str = "http",
    url: str = "",
    bearer: str = "",
    headers: dict[str, str] | str | None = None,
    command: str = "",
    args: list[str] | None = None,
    cwd: str = "",
    env_vars: str = "",
    timeout_ms: int = 0,
    agents: str = "",
    config_dir: str = "",
    transport_overrides: str = "",
    tool_id: str = "",
    accept_fallback: bool = True,
    backup: bool | None = None,
    dry_run: bool = False,
) -> dict[str, object]:
    """Add or replace an MCP server in one, many, or all agent config files.

    Every target file is written in order; if any write fails, every file
    already changed is restored exactly as it was and nothing is left
    half-configured. Secrets in the returned data are masked.

    Args:
        server_id: Name of the server entry (e.g. "github"). When empty, it is
            taken from the last path segment of ``url``.
        transport: "http" (default), "sse", or "stdio".
        url: Server endpoint for http/sse (e.g. "https://mcp.example.com/mcp").
        bearer: Access token. Sent as an ``Authorization: Bearer`` header.
        headers: Extra HTTP headers, as a mapping or "Name: value, Name2: value".
        command: Executable for stdio servers (e.g. "npx").
        args: Arguments for ``command``.
        cwd: Working directory for stdio servers.
        env_vars: Environment for stdio servers as "KEY=VALUE,KEY2=VALUE2".
        timeout_ms: Request timeout in milliseconds. 0 leaves it unset.
        agents: Comma-separated agent names ("Cursor,Claude Code"), "all" for
            every supported agent, or empty for every agent with a config file.
        config_dir: Project directory. Writes project-scoped configs inside it
            instead of the user-level files.
        transport_overrides: Per-agent transport, e.g. "Claude Code=sse".
        tool_id: Catalog tool (see list_stdio_tools) to install and launch for
            stdio transport when ``command`` is empty.
        accept_fallback: When the tool's own binary fails its health check,
            use a runner-based command (e.g. npx) instead of failing.
        backup: Keep a timestamped copy of each file before writing it.
            Defaults to the MCP_WEAVE_BACKUP setting.
        dry_run: Show what would be written without touching any file.

    Returns:
        Result with: success, state, server_id, per-agent results (outcome,
        backup_path, error), failed_agent, and reverted agents. Dry runs
        return per-agent previews instead.
    """
    try:
        app = get_context(ctx)
        kind = _parse_transport(transport)

        env = _parse_env_vars(env_vars)
        run_args = list(args or [])
        if kind == Transport.STDIO and tool_id and not command:
            tool = app.catalog.get(tool_id)
            if tool is None:
                raise ValidationError(
                    f"Unknown tool '{tool_id}'. Use list_stdio_tools to see available tools."
                )
            missing = _missing_env_prompts(tool, env)
            if missing:
                raise ValidationError(
                    f"Tool '{tool_id}' needs environment variable(s): {', '.join(missing)}. "
                    "Pass them in env_vars."
                )
            await ctx.info(f"Resolving STDIO tool {tool_id}...")
            invocation = await resolve_invocation(
                tool,
                allow_install=app.settings.allow_install,
                install_manager=app.settings.install_manager,
                accept_fallback=accept_fallback,
                fallback_prefixes=app.fallback_prefixes,
                generic_runners=app.catalog.generic_runners,
            )
            command = invocation.command
            run_args = [*invocation.args, *run_args]

        if not server_id:
            server_id = tool_id if (kind == Transport.STDIO and tool_id) else derive_server_id(url)

        spec = CanonicalServerSpec(
            server_id=server_id.strip(),
            transport=kind,
            url=url.strip(),
            headers=_with_bearer(_parse_headers(headers), bearer),
            command=command.strip(),
            args=run_args,
            cwd=cwd,
            env=env,
            timeout_ms=timeout_ms or None,
        )

        targets = resolve_agents(agents, config_dir=config_dir)
        if not targets:
            return {
                "success": False,
                "server_id": spec.server_id,
                "error": (
                    "No agent config file found. Pass agents='all' or name the agents "
                    "to create their config files."
                ),
            }

        transaction = ConfigTransaction(
            spec,
            targets,
            backup=app.settings.backup if backup is None else backup,
            transport_overrides=_parse_overrides(transport_overrides),
        )

        if dry_run:
            previews = preview_transaction(transaction)
            return {
                "success": True,
                "dry_run": True,
                "server_id": spec.server_id,
                "previews": [asdict(p) for p in previews],
            }

        await ctx.info(
            f"Writing '{spec.server_id}' to {len(targets)} agent(s): "
            + ", ".join(a.name for a in targets)
        )
        result = transaction.apply()
        if not result.success:
            await ctx.warning(f"Rolled back: {redact_text(result.error)}")
        return _result_dict(result)

    except RollbackError as exc:
        logger.critical("configure_server left files partially modified: %s", exc)
        data = _result_dict(exc.result) if exc.result is not None else {"success": False}
        data["success"] = False
        data["rollback_failed"] = True
        data["error"] = redact_text(str(exc))
        return data
    except McpWeaveError as exc:
        return {"success": False, "server_id": server_id, "error": redact_text(str(exc))}
    except Exception as exc:
        await ctx.error(f"Unexpected error in configure_server: {redact_text(str(exc))}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}

