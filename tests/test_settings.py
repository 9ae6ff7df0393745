"""Tests for settings.py -- environment configuration."""

from __future__ import annotations

import pytest

from mcp_weave.errors import ValidationError
from mcp_weave.settings import Settings


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings == Settings()
        assert settings.backup is True
        assert settings.allow_install is True
        assert settings.install_manager == "auto"

    @pytest.mark.parametrize("value", ["0", "false", "off", "NO"])
    def test_backup_disabled(self, value):
        assert Settings.from_env({"MCP_WEAVE_BACKUP": value}).backup is False

    def test_backup_garbage_keeps_default(self):
        assert Settings.from_env({"MCP_WEAVE_BACKUP": "maybe"}).backup is True

    def test_no_install(self):
        assert Settings.from_env({"MCP_WEAVE_NO_INSTALL": "1"}).allow_install is False

    def test_install_manager(self):
        assert Settings.from_env({"MCP_WEAVE_INSTALL_MANAGER": "Brew"}).install_manager == "brew"

    def test_invalid_install_manager(self):
        with pytest.raises(ValidationError, match="MCP_WEAVE_INSTALL_MANAGER"):
            Settings.from_env({"MCP_WEAVE_INSTALL_MANAGER": "apt"})

    def test_fallback_prefixes(self):
        settings = Settings.from_env({"MCP_WEAVE_FALLBACK_PREFIXES": "node, npx,,bun "})
        assert settings.fallback_prefixes == ["node", "npx", "bun"]

    def test_catalog_and_log_level(self):
        settings = Settings.from_env(
            {"MCP_WEAVE_TOOLS_CATALOG": " /etc/tools.yaml ", "MCP_WEAVE_LOG_LEVEL": "debug"}
        )
        assert settings.tools_catalog == "/etc/tools.yaml"
        assert settings.log_level == "DEBUG"

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("MCP_WEAVE_NO_INSTALL", "true")
        assert Settings.from_env().allow_install is False
