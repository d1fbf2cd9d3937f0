"""Installation discovery for n8nupdater."""

import os
from typing import Iterable, Optional, Sequence

from n8nupdater.constants import (
    COMPOSE_FILENAMES,
    ENV_FILENAME,
    FALLBACK_INSTALL_DIRS,
    SCAN_MAX_DEPTH,
    SCAN_NAME_PATTERNS,
    SCAN_ROOT,
)
from n8nupdater.errors import InstallationNotFound
from n8nupdater.errors_catalog import actionable_error
from n8nupdater.models import InstallationHandle


def has_compose_file(directory: str) -> bool:
    return any(os.path.isfile(os.path.join(directory, name)) for name in COMPOSE_FILENAMES)


class PathResolver:
    """Locates the n8n installation directory without prompting.

    The configured path wins when it exists. Otherwise the fallback
    directories are probed in order, then a bounded scan of ``scan_root``
    looks for directories named like an n8n or docker deployment.
    """

    def __init__(
        self,
        logger,
        fallback_dirs: Sequence[str] = FALLBACK_INSTALL_DIRS,
        scan_root: str = SCAN_ROOT,
        scan_max_depth: int = SCAN_MAX_DEPTH,
        name_patterns: Sequence[str] = SCAN_NAME_PATTERNS,
    ):
        self.logger = logger
        self.fallback_dirs = tuple(fallback_dirs)
        self.scan_root = scan_root
        self.scan_max_depth = scan_max_depth
        self.name_patterns = tuple(pattern.lower() for pattern in name_patterns)

    def resolve(self, candidate: str) -> InstallationHandle:
        if os.path.isdir(candidate):
            return self.validate(candidate)

        self.logger.warning(
            "Installation directory %s not found. Attempting to locate n8n installation...",
            candidate,
        )
        found = self.probe_fallbacks() or self.scan()
        if not found:
            raise InstallationNotFound(actionable_error("installation_not_found", path=candidate))

        self.logger.info("Found n8n installation at: %s", found)
        return self.validate(found)

    def probe_fallbacks(self) -> Optional[str]:
        for directory in self.fallback_dirs:
            if os.path.isdir(directory) and has_compose_file(directory):
                return directory
        return None

    def scan(self) -> Optional[str]:
        for directory in self._iter_scan_candidates():
            if has_compose_file(directory):
                return directory
        return None

    def _iter_scan_candidates(self) -> Iterable[str]:
        if not os.path.isdir(self.scan_root):
            return

        root_depth = self.scan_root.rstrip(os.sep).count(os.sep)
        for current, dirnames, _files in os.walk(self.scan_root, onerror=lambda _err: None):
            dirnames.sort()
            depth = current.rstrip(os.sep).count(os.sep) - root_depth
            if depth >= self.scan_max_depth:
                dirnames[:] = []
            if depth == 0:
                continue
            name = os.path.basename(current).lower()
            if any(pattern in name for pattern in self.name_patterns):
                yield current

    def validate(self, directory: str) -> InstallationHandle:
        path = os.path.abspath(directory)
        if not os.access(path, os.R_OK | os.X_OK):
            raise InstallationNotFound(actionable_error("installation_unreadable", path=path))

        present = [name for name in COMPOSE_FILENAMES if os.path.isfile(os.path.join(path, name))]
        if not present:
            raise InstallationNotFound(actionable_error("compose_file_missing", path=path))
        if len(present) > 1:
            raise InstallationNotFound(actionable_error("compose_file_ambiguous", path=path))

        return InstallationHandle(
            path=path,
            compose_file=present[0],
            has_env_file=os.path.isfile(os.path.join(path, ENV_FILENAME)),
        )
