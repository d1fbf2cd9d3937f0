"""Filesystem helpers for n8nupdater."""

import logging
import os
from typing import List, Tuple

from rich.filesize import decimal


class FileSystemService:
    """Encapsulates directory listing and sizing."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def list_files(self, path: str) -> List[Tuple[str, int]]:
        try:
            names = sorted(os.listdir(path))
        except OSError as exc:
            self.logger.warning("Could not list %s: %s", path, exc)
            return []

        entries = []
        for name in names:
            try:
                entries.append((name, os.path.getsize(os.path.join(path, name))))
            except OSError:
                entries.append((name, 0))
        return entries

    def directory_size(self, path: str) -> int:
        total = 0
        for current, _dirs, files in os.walk(path):
            for file_name in files:
                try:
                    total += os.path.getsize(os.path.join(current, file_name))
                except OSError:
                    continue
        return total

    def human_size(self, path: str) -> str:
        if not os.path.isdir(path):
            return "unknown"
        return decimal(self.directory_size(path))
