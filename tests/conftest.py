"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_weave.models import AgentDescriptor, CanonicalServerSpec, ConfigFormat, Transport

DEMO_URL = "https://api.example.com/mcp"
DEMO_TOKEN = "abcdefgh"


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point Path.home() at an empty directory so no real agent config is touched."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def demo_spec() -> CanonicalServerSpec:
    return CanonicalServerSpec(
        server_id="demo",
        transport=Transport.HTTP,
        url=DEMO_URL,
        headers={"Authorization": f"Bearer {DEMO_TOKEN}"},
    )


@pytest.fixture
def json_agent(tmp_path: Path) -> Callable[[str], AgentDescriptor]:
    """Factory for JSON agent descriptors whose configs live under tmp_path."""

    def make(name: str) -> AgentDescriptor:
        path = tmp_path / f"{name.lower().replace(' ', '_')}.json"
        return AgentDescriptor(name=name, config_path=str(path))

    return make


@pytest.fixture
def codex_agent(tmp_path: Path) -> AgentDescriptor:
    return AgentDescriptor(
        name="Codex CLI",
        config_path=str(tmp_path / "config.toml"),
        format=ConfigFormat.TOML,
        server_map_key="mcp_servers",
        supports_remote=False,
    )
