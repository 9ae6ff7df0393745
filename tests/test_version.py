"""Tests for runtime package version resolution."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version

import mcp_weave


class TestRuntimeVersion:
    """Version resolution should reflect installed package metadata."""

    def test_module_version_matches_installed_distribution(self):
        assert mcp_weave.__version__ == distribution_version("mcp-weave")

    def test_resolve_version_uses_deterministic_fallback_when_metadata_missing(self, monkeypatch):
        def _raise_package_not_found(_: str) -> str:
            raise PackageNotFoundError

        monkeypatch.setattr(mcp_weave, "_distribution_version", _raise_package_not_found)

        assert mcp_weave._resolve_version() == mcp_weave._LOCAL_VERSION_FALLBACK
