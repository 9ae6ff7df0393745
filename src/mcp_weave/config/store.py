"""File-backed ConfigStore used by the transaction coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mcp_weave.config.reader import load_document, read_snapshot
from mcp_weave.config.writer import backup_file, merge_entry, restore_snapshot, save_document
from mcp_weave.models import ConfigDocument, ConfigFormat, RenderedEntry


@dataclass(frozen=True, slots=True)
class FileConfigStore:
    """Stateless adapter over the reader/writer functions."""

    def snapshot(self, path: Path | str) -> bytes | None:
        return read_snapshot(path)

    def backup(self, path: Path | str) -> str | None:
        return backup_file(path)

    def load(self, path: Path | str, config_format: ConfigFormat) -> ConfigDocument:
        return load_document(path, config_format)

    def merge(
        self,
        document: ConfigDocument,
        server_map_key: str,
        server_id: str,
        entry: RenderedEntry,
    ) -> ConfigDocument:
        return merge_entry(document, server_map_key, server_id, entry)

    def save(self, path: Path | str, config_format: ConfigFormat, document: ConfigDocument) -> None:
        save_document(path, config_format, document)

    def restore(self, path: Path | str, snapshot: bytes | None) -> None:
        restore_snapshot(path, snapshot)
