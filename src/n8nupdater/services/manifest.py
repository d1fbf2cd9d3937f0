"""Backup manifest generation service."""

import os
from datetime import datetime
from typing import List, Optional, Tuple

from rich.filesize import decimal

from n8nupdater.constants import MANIFEST_FILENAME


class ManifestService:
    """Writes the human-readable ``backup-info.txt`` record of a bundle."""

    def __init__(self, logger, filesystem_service):
        self.logger = logger
        self.filesystem_service = filesystem_service

    def render(
        self,
        created_at: datetime,
        installation_path: str,
        container_identity: str,
        bundle_path: str,
        entries: List[Tuple[str, int]],
    ) -> str:
        lines = [
            "n8n Backup Information",
            "======================",
            f"Backup Date: {created_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
            f"Installation Directory: {installation_path}",
            f"Container Name: {container_identity or 'unknown'}",
            f"Backup Location: {bundle_path}",
            "",
            "Contents:",
        ]
        if entries:
            width = max(len(name) for name, _size in entries)
            lines.extend(f"  {name.ljust(width)}  {decimal(size)}" for name, size in entries)
        else:
            lines.append("  No files found")
        return "\n".join(lines) + "\n"

    def write(
        self,
        bundle_path: str,
        installation_path: str,
        container_identity: str,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Write the manifest last so its listing reflects the final bundle."""
        manifest_path = os.path.join(bundle_path, MANIFEST_FILENAME)
        entries = [
            entry
            for entry in self.filesystem_service.list_files(bundle_path)
            if entry[0] != MANIFEST_FILENAME
        ]
        content = self.render(
            created_at=created_at or datetime.now().astimezone(),
            installation_path=installation_path,
            container_identity=container_identity,
            bundle_path=bundle_path,
            entries=entries,
        )
        with open(manifest_path, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(content)
        return manifest_path
