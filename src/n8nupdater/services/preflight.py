"""Pre-flight environment checks for n8nupdater."""

import os
import shutil
from typing import Callable, Optional

from n8nupdater.errors import ConfigError, UpdaterError
from n8nupdater.errors_catalog import actionable_error


def nearest_existing_path(path: str) -> str:
    current = os.path.abspath(path)
    while not os.path.exists(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


class PreflightService:
    """Checks that the host can run an update before anything is touched."""

    def __init__(
        self,
        logger,
        run_cmd: Callable,
        which: Callable[[str], Optional[str]] = shutil.which,
        disk_usage: Callable = shutil.disk_usage,
        geteuid: Optional[Callable[[], int]] = None,
    ):
        self.logger = logger
        self.run_cmd = run_cmd
        self.which = which
        self.disk_usage = disk_usage
        self.geteuid = geteuid or getattr(os, "geteuid", lambda: 0)

    def check_privileges(self, require_root: bool):
        if require_root and self.geteuid() != 0:
            raise ConfigError(actionable_error("not_root"))

    def require_command(self, command: str):
        if not self.which(command):
            raise ConfigError(actionable_error("command_not_found", command=command))

    def check_daemon(self):
        try:
            result = self.run_cmd(["docker", "info"], check=False, capture_output=True)
        except UpdaterError as exc:
            raise ConfigError(actionable_error("docker_daemon_down")) from exc
        if result.returncode != 0:
            raise ConfigError(actionable_error("docker_daemon_down"))

    def available_mb(self, path: str) -> Optional[int]:
        try:
            usage = self.disk_usage(nearest_existing_path(path))
        except OSError as exc:
            self.logger.warning("Could not determine free disk space for %s: %s", path, exc)
            return None
        return int(usage.free // (1024 * 1024))

    def check_disk_space(self, path: str, required_mb: int) -> bool:
        """Advisory only: logs a warning and returns False when space is low."""
        available = self.available_mb(path)
        if available is None:
            return True
        if available < required_mb:
            self.logger.warning(
                "Low disk space: %sMB available (recommended: %sMB+)", available, required_mb
            )
            return False
        return True
