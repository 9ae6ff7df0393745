"""Atomic config file writes with merge semantics.

Invariants:
  1. Merging one server never modifies sibling servers or unrelated keys.
  2. Writes are atomic: write to unique temp file, then os.replace().
  3. The full document is round-tripped -- unknown keys are preserved.
  4. A target whose permission bits mark it read-only is never replaced.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path

import tomlkit
from tomlkit.items import Table
from tomlkit.toml_document import TOMLDocument

from mcp_weave.errors import ConfigWriteError, DocumentShapeError
from mcp_weave.models import ConfigDocument, ConfigFormat, RenderedEntry

logger = logging.getLogger(__name__)

BACKUP_MARKER = ".mcp-weave-backup-"

_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


def merge_entry(
    document: ConfigDocument,
    server_map_key: str,
    server_id: str,
    entry: RenderedEntry,
) -> ConfigDocument:
    """Set ``document[server_map_key][server_id] = entry`` in place and return it.

    Creates the server map when missing. Any prior entry for *server_id* is
    replaced at its current position; everything else is left untouched.
    """
    servers = document.get(server_map_key)
    if servers is None:
        servers = tomlkit.table() if isinstance(document, TOMLDocument) else {}
        document[server_map_key] = servers
        servers = document[server_map_key]
    elif not isinstance(servers, (Mapping, Table)):
        raise DocumentShapeError(
            f"Cannot add server '{server_id}': '{server_map_key}' is a "
            f"{type(servers).__name__}, expected a mapping of servers."
        )

    servers[server_id] = dict(entry)
    return document


def serialize_document(document: ConfigDocument, config_format: ConfigFormat | str) -> str:
    """Render a document as file text in its native format."""
    try:
        if ConfigFormat(config_format) is ConfigFormat.TOML:
            return tomlkit.dumps(document)
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as exc:
        raise ConfigWriteError(f"Failed to serialize {config_format} config: {exc}") from exc


def save_document(
    config_path: Path | str,
    config_format: ConfigFormat | str,
    document: ConfigDocument,
) -> None:
    """Serialize and write *document* atomically."""
    path = Path(config_path)
    content = serialize_document(document, config_format)
    _atomic_write(path, content.encode("utf-8"))


def backup_file(config_path: Path | str) -> str | None:
    """Copy the file to a unique timestamped sibling before mutation.

    Returns the backup path, or None when there is nothing to preserve.
    """
    path = Path(config_path)
    if not path.exists():
        return None

    stamp = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S%fZ")
    target = path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}")
    counter = 1
    while target.exists():
        target = path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}-{counter}")
        counter += 1

    try:
        shutil.copy2(path, target)
    except OSError as exc:
        raise ConfigWriteError(f"Failed to back up {path} to {target}: {exc}") from exc
    logger.info("Backed up %s to %s", path, target)
    return str(target)


def restore_snapshot(config_path: Path | str, snapshot: bytes | None) -> None:
    """Put a file back to a captured state.

    ``snapshot=None`` means the file did not exist before, so it is removed.
    """
    path = Path(config_path)
    if snapshot is None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise ConfigWriteError(f"Failed to remove {path}: {exc}") from exc
        return
    _atomic_write(path, snapshot, check_writable=False)


def _ensure_writable(path: Path) -> int | None:
    """Return the current mode of *path*, refusing read-only targets."""
    try:
        mode = path.stat().st_mode
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigWriteError(f"Cannot access {path}: {exc}") from exc
    if not mode & _WRITE_BITS:
        raise ConfigWriteError(
            f"{path} is read-only. Make it writable or exclude this agent, then retry."
        )
    return mode


def _atomic_write(path: Path, payload: bytes, *, check_writable: bool = True) -> None:
    """Write bytes atomically: write to unique temp file then rename."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigWriteError(f"Cannot create directory {path.parent}: {exc}") from exc

    if check_writable:
        mode = _ensure_writable(path)
    else:
        try:
            mode = path.stat().st_mode
        except OSError:
            mode = None

    fd = None
    tmp_path: str | None = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            suffix=".tmp",
            prefix=f".{path.stem}_",
        )
        os.write(fd, payload)
        os.close(fd)
        fd = None
        if mode is not None:
            os.chmod(tmp_path, stat.S_IMODE(mode))
        os.replace(tmp_path, str(path))
        tmp_path = None
    except PermissionError as exc:
        raise ConfigWriteError(f"Permission denied writing to {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigWriteError(f"Failed to write {path}: {exc}") from exc
    finally:
        if fd is not None:
            os.close(fd)
        if tmp_path is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
