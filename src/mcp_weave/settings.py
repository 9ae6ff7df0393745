"""Runtime settings read from the environment once, at startup."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from mcp_weave.errors import ValidationError
from mcp_weave.resolver.tools import INSTALL_MANAGERS

_FALSY = frozenset({"0", "false", "no", "off"})
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _flag(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    return default


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-wide defaults. Tool arguments override them per call."""

    backup: bool = True
    allow_install: bool = True
    install_manager: str = "auto"
    tools_catalog: str = ""
    # Empty means "use the catalog's own list".
    fallback_prefixes: list[str] = field(default_factory=list)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``MCP_WEAVE_*`` variables.

        Raises:
            ValidationError: MCP_WEAVE_INSTALL_MANAGER names an unknown manager.
        """
        env = os.environ if environ is None else environ

        manager = env.get("MCP_WEAVE_INSTALL_MANAGER", "auto").strip().lower() or "auto"
        if manager not in INSTALL_MANAGERS:
            raise ValidationError(
                f"Invalid MCP_WEAVE_INSTALL_MANAGER '{manager}'. "
                f"Use one of: {', '.join(INSTALL_MANAGERS)}."
            )

        prefixes = [p.strip() for p in env.get("MCP_WEAVE_FALLBACK_PREFIXES", "").split(",")]

        return cls(
            backup=_flag(env.get("MCP_WEAVE_BACKUP"), default=True),
            allow_install=not _flag(env.get("MCP_WEAVE_NO_INSTALL"), default=False),
            install_manager=manager,
            tools_catalog=env.get("MCP_WEAVE_TOOLS_CATALOG", "").strip(),
            fallback_prefixes=[p for p in prefixes if p],
            log_level=env.get("MCP_WEAVE_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        )
