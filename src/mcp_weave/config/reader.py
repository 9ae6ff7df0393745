"""Read agent config files (JSON or TOML) with schema tolerance.

Documents are returned whole so the writer can round-trip unknown keys.
TOML documents stay ``tomlkit`` documents so comments and layout of
unrelated tables survive a rewrite.
"""

from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.toml_document import TOMLDocument

from mcp_weave.errors import ConfigParseError, ConfigReadError
from mcp_weave.models import ConfigDocument, ConfigFormat


def empty_document(config_format: ConfigFormat | str) -> ConfigDocument:
    """Default document for a file that does not exist yet."""
    if ConfigFormat(config_format) is ConfigFormat.TOML:
        return tomlkit.document()
    return {}


def read_snapshot(config_path: Path | str) -> bytes | None:
    """Exact file bytes, or None when the file does not exist."""
    path = Path(config_path)
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
    except PermissionError as exc:
        raise ConfigReadError(f"Permission denied reading {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigReadError(f"Failed to read {path}: {exc}") from exc


def load_document(config_path: Path | str, config_format: ConfigFormat | str) -> ConfigDocument:
    """Read a full agent config file.

    Returns an empty default document if the file doesn't exist or is blank,
    so first-time configuration can create it.
    """
    path = Path(config_path)
    fmt = ConfigFormat(config_format)
    raw = read_snapshot(path)
    if raw is None:
        return empty_document(fmt)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigParseError(f"{path} is not valid UTF-8: {exc}") from exc
    if not text.strip():
        return empty_document(fmt)
    return parse_document(text, fmt, source=str(path))


def parse_document(
    text: str, config_format: ConfigFormat | str, source: str = ""
) -> ConfigDocument:
    """Parse config text in its declared format."""
    if ConfigFormat(config_format) is ConfigFormat.TOML:
        try:
            return tomlkit.parse(text)
        except TOMLKitError as exc:
            raise ConfigParseError(
                f"Invalid TOML in {source}: {exc}. "
                "Fix the TOML syntax or delete the file to start fresh."
            ) from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(
            f"Invalid JSON in {source}: {exc}. "
            "Fix the JSON syntax or delete the file to start fresh."
        ) from exc
    if not isinstance(data, dict):
        raise ConfigParseError(
            f"Invalid config in {source}: expected a JSON object at the top level, "
            f"got {type(data).__name__}."
        )
    return data


async def aload_document(
    config_path: Path | str, config_format: ConfigFormat | str
) -> ConfigDocument:
    """Async version of load_document. Use from async code to avoid blocking the event loop."""
    return await asyncio.to_thread(load_document, config_path, config_format)


def to_plain(document: Mapping[str, Any]) -> dict[str, Any]:
    """Detached plain-Python copy of a document (tomlkit containers unwrapped)."""
    if isinstance(document, TOMLDocument):
        return document.unwrap()
    return copy.deepcopy(dict(document))


def list_server_entries(
    document: Mapping[str, Any],
    server_map_key: str,
) -> list[tuple[str, dict[str, Any]]]:
    """Extract (server_id, entry) pairs from a document's server map."""
    servers = to_plain(document).get(server_map_key, {})
    if not isinstance(servers, dict):
        return []
    return [(name, entry) for name, entry in servers.items() if isinstance(entry, dict)]
