"""Dry-run preview: what a transaction would write, redacted, without writing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mcp_weave.config.reader import list_server_entries, load_document
from mcp_weave.errors import ConfigReadError
from mcp_weave.redaction import redact
from mcp_weave.transaction.coordinator import ConfigTransaction


@dataclass(frozen=True, slots=True)
class AgentPreview:
    """Before/after server snippet for one agent."""

    agent: str
    config_path: str
    transport: str
    action: str  # "create_file", "add_server", "replace_server"
    before: dict[str, Any] | None
    after: dict[str, Any]
    error: str = ""


def preview_transaction(transaction: ConfigTransaction) -> list[AgentPreview]:
    """Validate and render every agent, then compare with what is on disk.

    A file that cannot be read is reported on its preview rather than
    raised, since nothing is being written.
    """
    previews: list[AgentPreview] = []
    server_id = transaction.spec.server_id
    for item in transaction.plan():
        agent = item.agent
        before: dict[str, Any] | None = None
        error = ""
        if not Path(agent.config_path).exists():
            action = "create_file"
        else:
            try:
                document = load_document(agent.config_path, agent.format)
                before = dict(list_server_entries(document, agent.server_map_key)).get(server_id)
            except ConfigReadError as exc:
                error = str(exc)
            action = "replace_server" if before is not None else "add_server"

        previews.append(
            AgentPreview(
                agent=agent.name,
                config_path=agent.config_path,
                transport=item.spec.transport.value,
                action=action,
                before=redact(before) if before is not None else None,
                after=redact(item.entry),
                error=error,
            )
        )
    return previews
