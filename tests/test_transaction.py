"""Tests for the transaction coordinator -- all-or-nothing multi-agent writes."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import tomlkit

from mcp_weave.config.store import FileConfigStore
from mcp_weave.errors import ConfigWriteError, McpWeaveError, RollbackError, ValidationError
from mcp_weave.models import (
    AgentOutcome,
    CanonicalServerSpec,
    ConfigFormat,
    TransactionState,
    Transport,
)
from mcp_weave.survey import read_agent_status
from mcp_weave.transaction.coordinator import ConfigTransaction, apply_transaction
from mcp_weave.transaction.preview import preview_transaction

URL = "https://api.example.com/mcp"

CODEX_WITH_DEMO = """\
# Codex settings
model = "o3"  # default model

[mcp_servers.other]
command = "uvx"
args = ["mcp-server-git"]

# previous demo entry
[mcp_servers.demo]
command = "node"
args = ["demo.js"]

[mcp_servers.demo.env]
DEMO_TOKEN = "t-123"
"""


def _seed(path: str, data: object) -> bytes:
    Path(path).write_text(json.dumps(data, indent=4, sort_keys=True))
    return Path(path).read_bytes()


def _servers(path: str) -> dict:
    return json.loads(Path(path).read_text())["mcpServers"]


class RecordingStore:
    """FileConfigStore wrapper that can fail saves and records restores."""

    def __init__(self, fail_save_on: str = "", fail_restore: bool = False) -> None:
        self.inner = FileConfigStore()
        self.fail_save_on = fail_save_on
        self.fail_restore = fail_restore
        self.restored: list[str] = []

    def snapshot(self, path):
        return self.inner.snapshot(path)

    def backup(self, path):
        return self.inner.backup(path)

    def load(self, path, config_format):
        return self.inner.load(path, config_format)

    def merge(self, document, server_map_key, server_id, entry):
        return self.inner.merge(document, server_map_key, server_id, entry)

    def save(self, path, config_format, document):
        if str(path) == self.fail_save_on:
            raise ConfigWriteError(f"Disk full writing {path}")
        self.inner.save(path, config_format, document)

    def restore(self, path, snapshot):
        self.restored.append(str(path))
        if self.fail_restore:
            raise ConfigWriteError(f"Cannot restore {path}")
        self.inner.restore(path, snapshot)


# === Commit ===================================================================


class TestCommit:
    def test_demo_spec_renders_per_agent(self, demo_spec, json_agent):
        cursor = json_agent("Cursor")
        claude = json_agent("Claude Code")

        result = apply_transaction(
            demo_spec,
            [cursor, claude],
            transport_overrides={"Claude Code": "sse"},
        )

        assert result.success is True
        assert result.state is TransactionState.COMMITTED
        assert [r.outcome for r in result.results] == [AgentOutcome.APPLIED] * 2
        assert _servers(cursor.config_path)["demo"] == {
            "type": "http",
            "url": URL,
            "headers": {"Authorization": "Bearer abcdefgh"},
        }
        assert _servers(claude.config_path)["demo"] == {
            "type": "sse",
            "url": URL,
            "headers": {"Authorization": "Bearer abcdefgh"},
        }

    async def test_status_read_back_masks_authorization(self, demo_spec, json_agent):
        claude = json_agent("Claude Code")
        apply_transaction(demo_spec, [claude], transport_overrides={"claude code": "sse"})

        status = await read_agent_status(claude)

        assert status.exists is True
        (server,) = status.servers
        assert server.server_id == "demo"
        assert server.transport == "sse"
        assert server.config["headers"]["Authorization"] == "****efgh"

    def test_preserves_siblings_and_unknown_keys(self, demo_spec, json_agent):
        cursor = json_agent("Cursor")
        _seed(cursor.config_path, {"theme": "dark", "mcpServers": {"other": {"command": "x"}}})

        apply_transaction(demo_spec, [cursor])

        data = json.loads(Path(cursor.config_path).read_text())
        assert data["theme"] == "dark"
        assert data["mcpServers"]["other"] == {"command": "x"}
        assert "demo" in data["mcpServers"]

    def test_backups_created_for_existing_files(self, demo_spec, json_agent):
        cursor = json_agent("Cursor")
        claude = json_agent("Claude Code")
        original = _seed(cursor.config_path, {"mcpServers": {}})

        result = apply_transaction(demo_spec, [cursor, claude])

        assert set(result.backups) == {"Cursor"}
        assert Path(result.backups["Cursor"]).read_bytes() == original

    def test_backup_disabled(self, demo_spec, json_agent, tmp_path):
        cursor = json_agent("Cursor")
        _seed(cursor.config_path, {})

        result = apply_transaction(demo_spec, [cursor], backup=False)

        assert result.backups == {}
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cursor.json"]

    def test_codex_gets_supergateway_bridge(self, demo_spec, codex_agent):
        Path(codex_agent.config_path).write_text('model = "o4-mini"\n')

        result = apply_transaction(demo_spec, [codex_agent])

        assert result.success
        doc = tomlkit.parse(Path(codex_agent.config_path).read_text()).unwrap()
        assert doc["model"] == "o4-mini"
        assert doc["mcp_servers"]["demo"] == {
            "command": "npx",
            "args": [
                "-y",
                "supergateway",
                "--streamableHttp",
                URL,
                "--oauth2Bearer",
                "abcdefgh",
            ],
        }

    def test_transaction_cannot_run_twice(self, demo_spec, json_agent):
        txn = ConfigTransaction(demo_spec, [json_agent("Cursor")])
        txn.apply()
        with pytest.raises(McpWeaveError, match="already ran"):
            txn.apply()


# === Validation ===============================================================


class TestValidationAbort:
    def test_missing_url_touches_nothing(self, json_agent, tmp_path):
        spec = CanonicalServerSpec(server_id="demo", transport=Transport.HTTP)
        with pytest.raises(ValidationError):
            apply_transaction(spec, [json_agent("Cursor")])
        assert list(tmp_path.iterdir()) == []

    def test_stdio_without_command(self, json_agent):
        spec = CanonicalServerSpec(server_id="fs", transport=Transport.STDIO)
        with pytest.raises(ValidationError, match="command"):
            apply_transaction(spec, [json_agent("Cursor")])

    def test_bad_timeout(self, demo_spec, json_agent):
        spec = CanonicalServerSpec(
            server_id="demo", transport=Transport.HTTP, url=URL, timeout_ms=-5
        )
        with pytest.raises(ValidationError, match="Timeout"):
            apply_transaction(spec, [json_agent("Cursor")])

    def test_unknown_transport_override(self, demo_spec, json_agent, tmp_path):
        with pytest.raises(ValidationError, match="transport override 'websocket'"):
            apply_transaction(
                demo_spec, [json_agent("Cursor")], transport_overrides={"Cursor": "websocket"}
            )
        assert list(tmp_path.iterdir()) == []


# === Rollback =================================================================


class TestRollback:
    def test_read_only_third_file_restores_first_two(self, demo_spec, json_agent):
        first = json_agent("Cursor")
        second = json_agent("Claude Code")
        third = json_agent("Windsurf")
        first_bytes = _seed(first.config_path, {"mcpServers": {"a": {"command": "a"}}})
        second_bytes = _seed(second.config_path, {"other": [1, 2, 3]})
        third_bytes = _seed(third.config_path, {"mcpServers": {}})
        Path(third.config_path).chmod(0o444)

        try:
            result = apply_transaction(demo_spec, [first, second, third])
        finally:
            Path(third.config_path).chmod(0o644)

        assert result.success is False
        assert result.state is TransactionState.ROLLED_BACK
        assert result.failed_agent == "Windsurf"
        assert "read-only" in result.error
        assert set(result.reverted) == {"Cursor", "Claude Code"}
        assert [r.outcome for r in result.results] == [
            AgentOutcome.REVERTED,
            AgentOutcome.REVERTED,
            AgentOutcome.FAILED,
        ]
        assert Path(first.config_path).read_bytes() == first_bytes
        assert Path(second.config_path).read_bytes() == second_bytes
        assert Path(third.config_path).read_bytes() == third_bytes

    def test_new_file_removed_on_rollback(self, demo_spec, json_agent):
        created = json_agent("Cursor")
        blocked = json_agent("Claude Code")
        _seed(blocked.config_path, {})
        store = RecordingStore(fail_save_on=blocked.config_path)

        result = apply_transaction(demo_spec, [created, blocked], store=store)

        assert result.success is False
        assert not Path(created.config_path).exists()

    def test_rollback_runs_in_reverse_order(self, demo_spec, json_agent):
        agents = [json_agent(n) for n in ("Cursor", "Claude Code", "Gemini CLI", "Windsurf")]
        store = RecordingStore(fail_save_on=agents[3].config_path)

        apply_transaction(demo_spec, agents, store=store)

        assert store.restored == [a.config_path for a in reversed(agents[:3])]

    def test_agents_after_failure_are_skipped(self, demo_spec, json_agent):
        agents = [json_agent(n) for n in ("Cursor", "Claude Code", "Windsurf")]
        store = RecordingStore(fail_save_on=agents[1].config_path)

        result = apply_transaction(demo_spec, agents, store=store)

        assert [r.outcome for r in result.results] == [
            AgentOutcome.REVERTED,
            AgentOutcome.FAILED,
            AgentOutcome.SKIPPED,
        ]
        assert not Path(agents[2].config_path).exists()

    def test_parse_error_triggers_rollback(self, demo_spec, json_agent):
        good = json_agent("Cursor")
        broken = json_agent("Claude Code")
        good_bytes = _seed(good.config_path, {"mcpServers": {}})
        Path(broken.config_path).write_text("{broken")

        result = apply_transaction(demo_spec, [good, broken])

        assert result.success is False
        assert result.failed_agent == "Claude Code"
        assert "Invalid JSON" in result.error
        assert Path(good.config_path).read_bytes() == good_bytes
        assert Path(broken.config_path).read_text() == "{broken"

    def test_toml_and_json_mix_restores_toml_bytes(self, demo_spec, codex_agent, json_agent):
        Path(codex_agent.config_path).write_text(CODEX_WITH_DEMO)
        codex_bytes = Path(codex_agent.config_path).read_bytes()
        broken = json_agent("Cursor")
        Path(broken.config_path).write_text("{broken")

        result = apply_transaction(demo_spec, [codex_agent, broken])

        assert result.success is False
        assert result.failed_agent == "Cursor"
        assert result.reverted == ["Codex CLI"]
        assert Path(codex_agent.config_path).read_bytes() == codex_bytes

    def test_failed_restore_raises_rollback_error(self, demo_spec, json_agent):
        agents = [json_agent("Cursor"), json_agent("Claude Code")]
        store = RecordingStore(fail_save_on=agents[1].config_path, fail_restore=True)

        with pytest.raises(RollbackError, match="partially modified") as excinfo:
            apply_transaction(demo_spec, agents, store=store)

        partial = excinfo.value.result
        assert partial is not None
        assert partial.success is False
        assert partial.failed_agent == "Claude Code"
        assert partial.results[0].outcome is AgentOutcome.APPLIED


# === Preview ==================================================================


class TestPreview:
    def test_dry_run_writes_nothing(self, demo_spec, json_agent, tmp_path):
        txn = ConfigTransaction(demo_spec, [json_agent("Cursor"), json_agent("Gemini CLI")])

        previews = preview_transaction(txn)

        assert list(tmp_path.iterdir()) == []
        assert [p.action for p in previews] == ["create_file", "create_file"]
        assert previews[1].after == {
            "httpUrl": URL,
            "headers": {"Authorization": "****efgh"},
        }

    def test_replace_and_add_actions(self, demo_spec, json_agent):
        cursor = json_agent("Cursor")
        claude = json_agent("Claude Code")
        _seed(cursor.config_path, {"mcpServers": {"demo": {"url": "https://old.example.com"}}})
        _seed(claude.config_path, {"mcpServers": {}})

        previews = preview_transaction(ConfigTransaction(demo_spec, [cursor, claude]))

        assert previews[0].action == "replace_server"
        assert previews[0].before == {"url": "https://old.example.com"}
        assert previews[1].action == "add_server"
        assert previews[1].before is None

    def test_unreadable_file_reported_not_raised(self, demo_spec, json_agent):
        cursor = json_agent("Cursor")
        Path(cursor.config_path).write_text("{nope")

        (preview,) = preview_transaction(ConfigTransaction(demo_spec, [cursor]))

        assert "Invalid JSON" in preview.error

    def test_preview_then_apply(self, demo_spec, json_agent):
        txn = ConfigTransaction(demo_spec, [json_agent("Cursor")])
        preview_transaction(txn)
        assert txn.apply().success is True

    def test_codex_preview_is_stdio(self, demo_spec, codex_agent):
        (preview,) = preview_transaction(ConfigTransaction(demo_spec, [codex_agent]))
        assert preview.transport == "stdio"
        assert preview.after["command"] == "npx"
        assert "abcdefgh" not in preview.after["args"]
        assert codex_agent.format is ConfigFormat.TOML
