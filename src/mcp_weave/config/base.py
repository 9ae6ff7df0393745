"""Port: per-file config storage."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from mcp_weave.models import ConfigDocument, ConfigFormat, RenderedEntry


class ConfigStorePort(Protocol):
    """Port for reading, merging, and atomically writing one agent config file."""

    def snapshot(self, path: Path | str) -> bytes | None:
        """Exact current bytes of the file, None if it does not exist."""
        ...

    def backup(self, path: Path | str) -> str | None:
        """Copy the file to a sibling backup. None when there is nothing to copy."""
        ...

    def load(self, path: Path | str, config_format: ConfigFormat) -> ConfigDocument:
        """Parse the file, or an empty document when it does not exist."""
        ...

    def merge(
        self,
        document: ConfigDocument,
        server_map_key: str,
        server_id: str,
        entry: RenderedEntry,
    ) -> ConfigDocument:
        """Place *entry* at ``document[server_map_key][server_id]``."""
        ...

    def save(self, path: Path | str, config_format: ConfigFormat, document: ConfigDocument) -> None:
        """Serialize and write atomically."""
        ...

    def restore(self, path: Path | str, snapshot: bytes | None) -> None:
        """Write *snapshot* back, or delete the file when it is None."""
        ...
