"""Known agents, their config file locations, and name resolution."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from mcp_weave.errors import AgentNotFoundError
from mcp_weave.models import AgentDescriptor, ConfigFormat

GEMINI_CLI = "Gemini CLI"
CURSOR = "Cursor"
CLAUDE_CODE = "Claude Code"
WINDSURF = "Windsurf"
CODEX_CLI = "Codex CLI"

# ─── User-scoped config paths ───────────────────────────────────


def _gemini_user_config() -> Path:
    return Path.home() / ".gemini" / "settings.json"


def _cursor_user_config() -> Path:
    return Path.home() / ".cursor" / "mcp.json"


def _claude_code_user_config() -> Path:
    return Path.home() / ".claude.json"


def _windsurf_user_config() -> Path:
    return Path.home() / ".codeium" / "windsurf" / "mcp_config.json"


def _codex_user_config() -> Path:
    return Path.home() / ".codex" / "config.toml"


# (name, format, server map key, supports remote, user path)
_AGENTS: list[tuple[str, ConfigFormat, str, bool, Callable[[], Path]]] = [
    (GEMINI_CLI, ConfigFormat.JSON, "mcpServers", True, _gemini_user_config),
    (CURSOR, ConfigFormat.JSON, "mcpServers", True, _cursor_user_config),
    (CLAUDE_CODE, ConfigFormat.JSON, "mcpServers", True, _claude_code_user_config),
    (WINDSURF, ConfigFormat.JSON, "mcpServers", True, _windsurf_user_config),
    (CODEX_CLI, ConfigFormat.TOML, "mcp_servers", False, _codex_user_config),
]

# ─── Project-scoped config paths ────────────────────────────────

# Maps agent → relative path inside a project (config_dir) directory.
_PROJECT_CONFIGS: dict[str, str] = {
    GEMINI_CLI: ".gemini/settings.json",
    CURSOR: ".cursor/mcp.json",
    CLAUDE_CODE: ".mcp.json",
    WINDSURF: ".windsurf/mcp_config.json",
    CODEX_CLI: ".codex/config.toml",
}

_ALIASES: dict[str, str] = {
    "gemini": GEMINI_CLI,
    "gemini-cli": GEMINI_CLI,
    "cursor": CURSOR,
    "claude": CLAUDE_CODE,
    "claude-code": CLAUDE_CODE,
    "windsurf": WINDSURF,
    "codeium-windsurf": WINDSURF,
    "codex": CODEX_CLI,
    "codex-cli": CODEX_CLI,
}


# ─── Public API ─────────────────────────────────────────────────


def agent_names() -> list[str]:
    """Names of every supported agent, in registry order."""
    return [name for name, *_ in _AGENTS]


def canonical_agent_name(name: str) -> str | None:
    """Map a user-supplied name or alias to the agent's registry name."""
    key = name.strip().lower()
    for registered in agent_names():
        if registered.lower() == key:
            return registered
    return _ALIASES.get(key.replace(" ", "-"))


def parse_agent_names(agents: str | list[str]) -> list[str]:
    """Split a comma-separated string (or list) into trimmed, de-duplicated names."""
    raw = agents.split(",") if isinstance(agents, str) else list(agents)
    names: list[str] = []
    for item in raw:
        item = item.strip()
        if item and item not in names:
            names.append(item)
    return names


def get_agent(name: str, *, config_dir: str = "") -> AgentDescriptor:
    """Build the descriptor for one agent.

    Args:
        name: Agent name or alias (e.g. "Cursor", "gemini", "codex").
        config_dir: Project directory. When set, the agent's project-scoped
            config file inside it is used instead of the user-level file.

    Returns AgentDescriptor even if the file doesn't exist yet (for first-time setup).
    """
    canonical = canonical_agent_name(name)
    if canonical is None:
        raise AgentNotFoundError(
            f"Unknown agent name: {name}. Supported agents: {', '.join(agent_names())}."
        )

    for registered, fmt, map_key, supports_remote, path_fn in _AGENTS:
        if registered != canonical:
            continue
        path = Path(config_dir) / _PROJECT_CONFIGS[registered] if config_dir else path_fn()
        return AgentDescriptor(
            name=registered,
            config_path=str(path),
            format=fmt,
            server_map_key=map_key,
            supports_remote=supports_remote,
        )
    raise AgentNotFoundError(f"Unknown agent name: {name}.")


def all_agents(config_dir: str = "") -> list[AgentDescriptor]:
    """Descriptors for every supported agent, existing config or not."""
    return [get_agent(name, config_dir=config_dir) for name in agent_names()]


def detect_agents(config_dir: str = "") -> list[AgentDescriptor]:
    """Agents whose config files exist.

    Returns:
        Descriptors in registry order, only for files present on disk.
    """
    return [a for a in all_agents(config_dir) if Path(a.config_path).exists()]


def resolve_agents(agents: str | list[str] = "", *, config_dir: str = "") -> list[AgentDescriptor]:
    """Resolve target agents for one, many, or all agents.

    Args:
        agents: Comma-separated agent names, "all" for every supported agent,
            or empty for every agent with an existing config file.
        config_dir: Project directory for project-scoped configs.

    Returns:
        Descriptors in the order requested. Unknown names raise
        AgentNotFoundError listing all of them at once.
    """
    if config_dir and not Path(config_dir).is_dir():
        raise AgentNotFoundError(f"Configuration directory does not exist: {config_dir}")

    if agents == "all":
        return all_agents(config_dir)

    names = parse_agent_names(agents)
    if not names:
        return detect_agents(config_dir)

    invalid = [n for n in names if canonical_agent_name(n) is None]
    if invalid:
        raise AgentNotFoundError(
            f"Unknown agent name(s): {', '.join(invalid)}. "
            f"Supported agents: {', '.join(agent_names())}."
        )

    resolved: list[AgentDescriptor] = []
    for name in names:
        descriptor = get_agent(name, config_dir=config_dir)
        if descriptor not in resolved:
            resolved.append(descriptor)
    return resolved
