"""Apply one canonical server spec to many agent config files, all or nothing.

State machine per run::

    pending -> rendering -> applying -> committed
                                     -> rolling_back -> rolled_back

Agents are applied strictly in the caller's order and rolled back in
exactly the reverse order, so every applied change stays individually
revertible. Bookkeeping is a local stack of TransactionRecords; nothing
is shared between transactions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from mcp_weave.config.base import ConfigStorePort
from mcp_weave.config.reader import to_plain
from mcp_weave.config.store import FileConfigStore
from mcp_weave.errors import McpWeaveError, RollbackError, ValidationError
from mcp_weave.models import (
    AgentDescriptor,
    AgentOutcome,
    AgentResult,
    CanonicalServerSpec,
    RenderedEntry,
    TransactionRecord,
    TransactionResult,
    TransactionState,
    Transport,
)
from mcp_weave.proxy import bridge_to_stdio
from mcp_weave.redaction import redact, redact_text
from mcp_weave.renderer import render
from mcp_weave.transaction.interrupts import deferred_interrupts
from mcp_weave.validation import validate_spec

logger = logging.getLogger(__name__)

# Failures that trigger rollback. Anything else is a bug and propagates as-is.
_APPLY_ERRORS = (McpWeaveError, OSError)

_STARTED_STATES = frozenset(
    {
        TransactionState.APPLYING,
        TransactionState.COMMITTED,
        TransactionState.ROLLING_BACK,
        TransactionState.ROLLED_BACK,
    }
)


def _parse_overrides(overrides: Mapping[str, Transport | str]) -> dict[str, Transport]:
    """Key overrides by lowercased agent name.

    Raises:
        ValidationError: An override names an unknown transport.
    """
    parsed: dict[str, Transport] = {}
    for name, value in overrides.items():
        try:
            parsed[name.lower()] = Transport(value)
        except ValueError:
            raise ValidationError(
                f"Unsupported transport override '{value}' for {name}. "
                "Use one of: http, sse, stdio."
            ) from None
    return parsed


@dataclass(frozen=True, slots=True)
class PlannedWrite:
    """One agent's rendered entry, ready to merge."""

    agent: AgentDescriptor
    spec: CanonicalServerSpec
    entry: RenderedEntry


class ConfigTransaction:
    """One multi-agent apply with pre-write snapshots and reverse-order rollback."""

    def __init__(
        self,
        spec: CanonicalServerSpec,
        agents: Iterable[AgentDescriptor],
        *,
        backup: bool = True,
        transport_overrides: Mapping[str, Transport | str] | None = None,
        store: ConfigStorePort | None = None,
    ) -> None:
        self.spec = spec
        self.agents = list(agents)
        self.backup = backup
        self.transport_overrides = _parse_overrides(transport_overrides or {})
        self.store: ConfigStorePort = store or FileConfigStore()
        self.state = TransactionState.PENDING
        self._records: list[TransactionRecord] = []

    @property
    def records(self) -> list[TransactionRecord]:
        return list(self._records)

    def effective_spec(self, agent: AgentDescriptor) -> CanonicalServerSpec:
        """The spec as this agent will receive it (override, then STDIO bridging)."""
        spec = self.spec
        override = self.transport_overrides.get(agent.name.lower())
        if override is not None and override != spec.transport:
            spec = spec.with_transport(override)
        if not agent.supports_remote and spec.is_remote:
            spec = bridge_to_stdio(spec)
        return spec

    def plan(self) -> list[PlannedWrite]:
        """Validate and render for every agent. Touches no files."""
        validate_spec(self.spec)

        effective: list[tuple[AgentDescriptor, CanonicalServerSpec]] = []
        for agent in self.agents:
            try:
                spec = self.effective_spec(agent)
                validate_spec(spec)
            except ValidationError as exc:
                raise ValidationError(f"{agent.name}: {exc}") from exc
            effective.append((agent, spec))

        self.state = TransactionState.RENDERING
        planned: list[PlannedWrite] = []
        for agent, spec in effective:
            entry = render(spec, agent.name, spec.transport)
            logger.debug("Rendered %s for %s: %s", spec.server_id, agent.name, redact(entry))
            planned.append(PlannedWrite(agent=agent, spec=spec, entry=entry))
        return planned

    def apply(self) -> TransactionResult:
        """Run the transaction.

        Returns a TransactionResult; ``success`` is False when a step failed
        and every applied change was rolled back.

        Raises:
            ValidationError: The spec is invalid; no files were touched.
            RenderError: An entry could not be rendered; no files were touched.
            RollbackError: Restoring an applied file failed; files are left
                partially modified.
        """
        if self.state in _STARTED_STATES:
            raise McpWeaveError("This transaction already ran. Create a new one to apply again.")

        planned = self.plan()
        logger.info(
            "Applying server '%s' to %d agent(s): %s",
            self.spec.server_id,
            len(planned),
            ", ".join(p.agent.name for p in planned),
        )

        with deferred_interrupts():
            self.state = TransactionState.APPLYING
            failed: TransactionRecord | None = None
            for item in planned:
                record = TransactionRecord(
                    agent=item.agent.name, config_path=item.agent.config_path
                )
                self._records.append(record)
                try:
                    self._apply_one(item, record)
                except _APPLY_ERRORS as exc:
                    record.error = str(exc)
                    logger.error(
                        "Applying to %s failed: %s", item.agent.name, redact_text(str(exc))
                    )
                    failed = record
                    break

            if failed is None:
                self.state = TransactionState.COMMITTED
                logger.info(
                    "Committed server '%s' to %d agent(s)", self.spec.server_id, len(planned)
                )
                return self._result()

            self._rollback(failed)

        return self._result(failed)

    def _apply_one(self, item: PlannedWrite, record: TransactionRecord) -> None:
        agent = item.agent
        record.previous_bytes = self.store.snapshot(agent.config_path)
        record.existed = record.previous_bytes is not None
        if self.backup:
            record.backup_path = self.store.backup(agent.config_path)

        document = self.store.load(agent.config_path, agent.format)
        record.previous_document = to_plain(document)
        self.store.merge(document, agent.server_map_key, self.spec.server_id, item.entry)
        self.store.save(agent.config_path, agent.format, document)
        record.applied = True
        logger.info("Wrote server '%s' to %s", self.spec.server_id, agent.config_path)

    def _rollback(self, failed: TransactionRecord) -> None:
        """Restore every applied record, newest first."""
        self.state = TransactionState.ROLLING_BACK
        logger.warning(
            "Rolling back server '%s' after failure in %s", self.spec.server_id, failed.agent
        )

        for record in reversed(self._records):
            if not record.applied:
                continue
            try:
                self.store.restore(record.config_path, record.previous_bytes)
            except _APPLY_ERRORS as exc:
                logger.critical("Rollback of %s failed: %s", record.config_path, exc)
                raise RollbackError(
                    f"Rollback failed for {record.agent} ({record.config_path}): {exc}. "
                    "Config files are left partially modified"
                    + (f"; a backup is at {record.backup_path}." if record.backup_path else "."),
                    result=self._result(failed),
                ) from exc
            record.applied = False
            record.reverted = True
            logger.info("Reverted %s", record.config_path)

        self.state = TransactionState.ROLLED_BACK

    def _result(self, failed: TransactionRecord | None = None) -> TransactionResult:
        results: list[AgentResult] = []
        for index, agent in enumerate(self.agents):
            if index >= len(self._records):
                results.append(
                    AgentResult(
                        agent=agent.name,
                        config_path=agent.config_path,
                        outcome=AgentOutcome.SKIPPED,
                    )
                )
                continue

            record = self._records[index]
            if record.applied:
                outcome = AgentOutcome.APPLIED
            elif record.reverted:
                outcome = AgentOutcome.REVERTED
            else:
                outcome = AgentOutcome.FAILED
            results.append(
                AgentResult(
                    agent=record.agent,
                    config_path=record.config_path,
                    outcome=outcome,
                    backup_path=record.backup_path,
                    error=record.error,
                )
            )

        return TransactionResult(
            success=self.state == TransactionState.COMMITTED,
            state=self.state,
            server_id=self.spec.server_id,
            results=results,
            error=failed.error if failed else "",
            failed_agent=failed.agent if failed else "",
            reverted=[r.agent for r in self._records if r.reverted],
        )


def apply_transaction(
    spec: CanonicalServerSpec,
    agents: Iterable[AgentDescriptor],
    *,
    backup: bool = True,
    transport_overrides: Mapping[str, Transport | str] | None = None,
    store: ConfigStorePort | None = None,
) -> TransactionResult:
    """Apply *spec* to *agents* as one all-or-nothing transaction."""
    transaction = ConfigTransaction(
        spec,
        agents,
        backup=backup,
        transport_overrides=transport_overrides,
        store=store,
    )
    return transaction.apply()
