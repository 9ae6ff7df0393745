"""Load the STDIO tool catalog from YAML files or the built-in preset."""

from __future__ import annotations

import importlib.resources
import logging
from pathlib import Path
from typing import Any

import yaml

from mcp_weave.errors import CatalogError
from mcp_weave.models import EnvPrompt, ToolCatalog, ToolEntry, ToolInstaller

logger = logging.getLogger(__name__)

_BUILTIN_CATALOG = "tools.yaml"

# Used when a catalog file does not define its own.
DEFAULT_FALLBACK_PREFIXES: tuple[str, ...] = ("npx", "node", "php")
DEFAULT_GENERIC_RUNNERS: tuple[str, ...] = ("npx", "node", "php", "python", "python3")

_PLATFORMS = ("linux", "macos", "windows")


def load_catalog(path: Path | str | None = None) -> ToolCatalog:
    """Load a catalog file, or the built-in preset when *path* is empty.

    Raises:
        CatalogError: If the catalog cannot be read or parsed.
    """
    if path:
        return _load_from_file(Path(path))
    return _load_builtin()


def _load_builtin() -> ToolCatalog:
    """Load the built-in catalog from package resources."""
    try:
        ref = importlib.resources.files("mcp_weave.resolver") / "presets" / _BUILTIN_CATALOG
        text = ref.read_text(encoding="utf-8")
        return parse_catalog(text, source="builtin")
    except FileNotFoundError:
        raise CatalogError("Built-in tool catalog not found.") from None
    except CatalogError:
        raise
    except Exception as exc:
        raise CatalogError(f"Failed to load built-in tool catalog: {exc}") from exc


def _load_from_file(path: Path) -> ToolCatalog:
    """Load a catalog from a YAML file on disk."""
    if not path.exists():
        raise CatalogError(f"Tool catalog not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        return parse_catalog(text, source=str(path))
    except CatalogError:
        raise
    except Exception as exc:
        raise CatalogError(f"Failed to parse tool catalog '{path}': {exc}") from exc


def parse_catalog(text: str, source: str = "") -> ToolCatalog:
    """Parse YAML text into a ToolCatalog. Duplicate tool ids keep the first entry."""
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise CatalogError(f"Invalid catalog format in {source}: expected a YAML mapping.")

    tools_data = data.get("tools", [])
    if not isinstance(tools_data, list):
        raise CatalogError(f"Invalid catalog format in {source}: 'tools' must be a list.")

    tools: list[ToolEntry] = []
    seen: set[str] = set()
    for raw in tools_data:
        if not isinstance(raw, dict) or not raw.get("id"):
            continue
        tool = _parse_tool(raw)
        if tool.id in seen:
            logger.debug("Duplicate tool id %s in %s ignored", tool.id, source)
            continue
        seen.add(tool.id)
        tools.append(tool)

    return ToolCatalog(
        tools=tools,
        fallback_prefixes=_str_list(data.get("fallback_prefixes", DEFAULT_FALLBACK_PREFIXES)),
        generic_runners=_str_list(data.get("generic_runners", DEFAULT_GENERIC_RUNNERS)),
    )


def _parse_tool(raw: dict[str, Any]) -> ToolEntry:
    discovery = raw.get("discovery") or {}
    health = raw.get("health") or {}
    meta = raw.get("meta") or {}

    installers: dict[str, list[ToolInstaller]] = {}
    for platform in _PLATFORMS:
        entries = (raw.get("installers") or {}).get(platform) or []
        installers[platform] = [
            ToolInstaller(type=str(e.get("type", "")), command=str(e.get("command", "")))
            for e in entries
            if isinstance(e, dict) and e.get("command")
        ]

    env_prompts = [
        EnvPrompt(
            key=str(p["key"]),
            label=str(p.get("label", "")),
            secret=bool(p.get("secret", False)),
            optional=bool(p.get("optional", False)),
        )
        for p in meta.get("env_prompts", [])
        if isinstance(p, dict) and p.get("key")
    ]

    return ToolEntry(
        id=str(raw["id"]),
        bin=str(raw.get("bin", "")),
        discovery_commands=_str_list(discovery.get("commands", [])),
        installers=installers,
        health_version_command=str((health.get("version") or {}).get("command", "")),
        health_probe_command=str((health.get("probe") or {}).get("command", "")),
        env_prompts=env_prompts,
    )


def _str_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]
