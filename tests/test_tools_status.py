"""Tests for the agent_status MCP tool (tools/status.py)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

from mcp_weave.tools.status import agent_status


def _make_ctx() -> MagicMock:
    ctx = MagicMock()
    ctx.error = AsyncMock()
    return ctx


def _write_cursor(home, servers: dict) -> None:
    path = home / ".cursor" / "mcp.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"mcpServers": servers}))


class TestAgentStatus:
    async def test_all_agents_listed(self, fake_home):
        result = await agent_status(_make_ctx())

        assert [item["name"] for item in result] == [
            "Gemini CLI",
            "Cursor",
            "Claude Code",
            "Windsurf",
            "Codex CLI",
        ]
        assert all(item["exists"] is False for item in result)

    async def test_secrets_masked(self, fake_home):
        _write_cursor(
            fake_home,
            {
                "demo": {
                    "type": "http",
                    "url": "https://api.example.com/mcp",
                    "headers": {"Authorization": "Bearer abcdefgh"},
                }
            },
        )

        (cursor,) = await agent_status(_make_ctx(), agent="Cursor")

        (server,) = cursor["servers"]
        assert server["server_id"] == "demo"
        assert server["transport"] == "http"
        assert server["endpoint"] == "https://api.example.com/mcp"
        assert server["config"]["headers"]["Authorization"] == "****efgh"
        assert cursor["has_problems"] is False

    async def test_problems_filter(self, fake_home):
        _write_cursor(fake_home, {"broken": {"type": "sse"}, "ok": {"command": "npx"}})

        result = await agent_status(_make_ctx(), problems=True)

        (cursor,) = result
        assert cursor["name"] == "Cursor"
        problems = {s["server_id"]: s["problem"] for s in cursor["servers"]}
        assert problems == {"broken": True, "ok": False}

    async def test_unreadable_file_reported_on_its_agent(self, fake_home):
        (fake_home / ".claude.json").write_text("{not json")

        result = await agent_status(_make_ctx(), agent="claude,cursor")

        claude, cursor = result
        assert claude["exists"] is True
        assert claude["error"]
        assert claude["has_problems"] is True
        assert cursor["error"] == ""

    async def test_project_dir(self, tmp_path, fake_home):
        project = tmp_path / "proj"
        (project / ".cursor").mkdir(parents=True)
        (project / ".cursor" / "mcp.json").write_text('{"mcpServers": {"p": {"command": "x"}}}')

        (cursor,) = await agent_status(_make_ctx(), agent="Cursor", config_dir=str(project))

        assert cursor["config_path"] == str(project / ".cursor" / "mcp.json")
        assert cursor["servers"][0]["endpoint"] == "Local (STDIO)"

    async def test_unknown_agent(self, fake_home):
        result = await agent_status(_make_ctx(), agent="vim")
        assert result[0]["success"] is False
        assert "Unknown agent" in result[0]["error"]

    async def test_unexpected_error(self, fake_home):
        ctx = _make_ctx()
        with patch(
            "mcp_weave.tools.status.survey_agents", new=AsyncMock(side_effect=RuntimeError("x"))
        ):
            result = await agent_status(ctx)

        assert result == [{"success": False, "error": "Internal error: RuntimeError"}]
        ctx.error.assert_awaited_once()
