"""Exception hierarchy for mcp-weave.

All exceptions inherit from McpWeaveError (single catch point).
Messages are written for the person reading tool output -- clear,
actionable, no stack traces.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp_weave.models import TransactionResult


class McpWeaveError(Exception):
    """Base exception for all mcp-weave errors."""


class ValidationError(McpWeaveError):
    """A canonical server spec violates one of its invariants."""


class RenderError(McpWeaveError):
    """An agent/transport combination could not be rendered."""


class ConfigReadError(McpWeaveError):
    """Error reading an agent config file."""


class ConfigParseError(ConfigReadError):
    """An agent config file exists but is not valid in its declared format."""


class ConfigWriteError(McpWeaveError):
    """Error writing to an agent config file."""


class DocumentShapeError(ConfigWriteError):
    """The existing config document cannot hold a server map where expected."""


class RollbackError(McpWeaveError):
    """Restoring an already-applied config file failed.

    The file system is left partially modified. ``result`` carries the
    per-agent outcomes up to the point of failure.
    """

    def __init__(self, message: str, *, result: TransactionResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class AgentNotFoundError(McpWeaveError):
    """Unknown agent name or unsupported config scope."""


class CatalogError(McpWeaveError):
    """The STDIO tool catalog could not be loaded."""


class InstallError(McpWeaveError):
    """STDIO tool installation failed."""


class ToolResolutionError(McpWeaveError):
    """No usable invocation could be resolved for a STDIO tool."""
