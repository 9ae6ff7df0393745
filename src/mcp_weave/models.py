"""Domain models for mcp-weave. Frozen dataclasses unless ownership says otherwise."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

# ─── Enumerations ─────────────────────────────────────────────


class Transport(StrEnum):
    HTTP = "http"
    SSE = "sse"
    STDIO = "stdio"


class ConfigFormat(StrEnum):
    JSON = "json"
    TOML = "toml"


REMOTE_TRANSPORTS = frozenset({Transport.HTTP, Transport.SSE})

# Agent-native server entry, keyed into a document at server_map_key[server_id].
RenderedEntry = dict[str, object]

# Full in-memory parse of an agent file: dict for JSON, TOMLDocument for TOML.
ConfigDocument = MutableMapping[str, Any]


# ─── Server & Agent Models ────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CanonicalServerSpec:
    """Agent-agnostic description of one MCP server."""

    server_id: str
    transport: Transport
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    command: str = ""
    args: list[str] = field(default_factory=list)
    cwd: str = ""
    env: dict[str, str] = field(default_factory=dict)
    timeout_ms: int | None = None

    @property
    def is_remote(self) -> bool:
        return self.transport in REMOTE_TRANSPORTS

    def with_transport(self, transport: Transport | str) -> CanonicalServerSpec:
        return replace(self, transport=Transport(transport))


@dataclass(frozen=True, slots=True)
class AgentDescriptor:
    """A target agent tool and the config file it reads MCP servers from."""

    name: str
    config_path: str
    format: ConfigFormat = ConfigFormat.JSON
    server_map_key: str = "mcpServers"
    supports_remote: bool = True  # False: agent only runs STDIO servers


# ─── Transaction Models ───────────────────────────────────────


class TransactionState(StrEnum):
    PENDING = "pending"
    RENDERING = "rendering"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"


class AgentOutcome(StrEnum):
    APPLIED = "applied"
    FAILED = "failed"
    REVERTED = "reverted"
    SKIPPED = "skipped"


@dataclass(slots=True)
class TransactionRecord:
    """Audit entry for one agent within a running transaction.

    Mutable: the coordinator flips ``applied``/``reverted`` during rollback.
    Lives only for the duration of one apply call.
    """

    agent: str
    config_path: str
    backup_path: str | None = None
    previous_document: dict[str, Any] | None = None
    previous_bytes: bytes | None = None
    existed: bool = False
    applied: bool = False
    reverted: bool = False
    error: str = ""


@dataclass(frozen=True, slots=True)
class AgentResult:
    """Per-agent outcome reported to the caller."""

    agent: str
    config_path: str
    outcome: AgentOutcome
    backup_path: str | None = None
    error: str = ""


@dataclass(frozen=True, slots=True)
class TransactionResult:
    """Final report of one multi-agent apply."""

    success: bool
    state: TransactionState
    server_id: str
    results: list[AgentResult] = field(default_factory=list)
    error: str = ""
    failed_agent: str = ""
    reverted: list[str] = field(default_factory=list)

    @property
    def backups(self) -> dict[str, str]:
        return {r.agent: r.backup_path for r in self.results if r.backup_path}


# ─── Status Models ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ServerStatus:
    """One configured server as seen by a status read (values redacted)."""

    server_id: str
    config: dict[str, Any]
    transport: str  # "http", "sse", "stdio" or "N/A"
    endpoint: str
    enabled: bool = True
    problem: bool = False


@dataclass(frozen=True, slots=True)
class AgentStatus:
    """Status of one agent's config file."""

    name: str
    config_path: str
    exists: bool
    servers: list[ServerStatus] = field(default_factory=list)
    error: str = ""

    @property
    def has_problems(self) -> bool:
        return bool(self.error) or any(s.problem for s in self.servers)


# ─── Tool Resolver Models ─────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ToolInstaller:
    """One way of installing a STDIO tool on a platform."""

    type: str  # "npm", "brew", "pipx", "cargo", ...
    command: str


@dataclass(frozen=True, slots=True)
class EnvPrompt:
    """An environment variable a STDIO tool expects the user to supply."""

    key: str
    label: str = ""
    secret: bool = False
    optional: bool = False


@dataclass(frozen=True, slots=True)
class ToolEntry:
    """A local MCP server tool from the catalog."""

    id: str
    bin: str
    discovery_commands: list[str] = field(default_factory=list)
    installers: dict[str, list[ToolInstaller]] = field(default_factory=dict)
    health_version_command: str = ""
    health_probe_command: str = ""
    env_prompts: list[EnvPrompt] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ToolCatalog:
    """The STDIO tool catalog plus the data driving fallback selection."""

    tools: list[ToolEntry] = field(default_factory=list)
    fallback_prefixes: list[str] = field(default_factory=list)
    generic_runners: list[str] = field(default_factory=list)

    def get(self, tool_id: str) -> ToolEntry | None:
        for tool in self.tools:
            if tool.id == tool_id:
                return tool
        return None


@dataclass(frozen=True, slots=True)
class DetectResult:
    installed: bool
    command: str = ""


@dataclass(frozen=True, slots=True)
class Invocation:
    command: str
    args: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class HealthResult:
    ok: bool
    message: str = ""
