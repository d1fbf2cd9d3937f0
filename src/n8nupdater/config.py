"""Builds the run Configuration from defaults, file, environment and CLI."""

import os
from typing import Any, Dict, Mapping, Optional

from .constants import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_INSTALL_DIR,
    DEFAULT_LOCK_FILE,
    DEFAULT_LOG_FILE,
    DEFAULT_TIMEOUT_SECONDS,
)
from .errors import ConfigError
from .models import Configuration

DEFAULTS: Dict[str, Any] = {
    "install_dir": DEFAULT_INSTALL_DIR,
    "backup_dir": DEFAULT_BACKUP_DIR,
    "log_file": DEFAULT_LOG_FILE,
    "lock_file": DEFAULT_LOCK_FILE,
    "skip_backup": False,
    "timeout": DEFAULT_TIMEOUT_SECONDS,
    "require_root": True,
    "verbose": False,
}

ENVIRONMENT_KEYS = {
    "INSTALL_DIR": "install_dir",
    "BACKUP_DIR": "backup_dir",
    "LOG_FILE": "log_file",
    "LOCK_FILE": "lock_file",
    "SKIP_BACKUP": "skip_backup",
    "TIMEOUT": "timeout",
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


def parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false), got: {value!r}")


def parse_timeout(value: Any) -> int:
    try:
        timeout = int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"Timeout must be a whole number of seconds, got: {value!r}") from exc
    if timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got: {timeout}")
    return timeout


def normalize_directory(path: Optional[str], label: str) -> str:
    if not path:
        raise ConfigError(f"{label} path is empty")
    if not os.path.isabs(path):
        raise ConfigError(f"{label} path must be absolute: {path}")
    return os.path.normpath(path)


def merge_sources(
    cli_values: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    file_values: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Merge raw values in increasing precedence: defaults, file, environment, CLI.

    ``None`` values in ``cli_values`` mean "not given on the command line".
    Empty environment variables count as unset, so ``INSTALL_DIR=`` in a
    crontab keeps the default.
    """
    environ = os.environ if environ is None else environ
    merged: Dict[str, Any] = dict(DEFAULTS)
    merged.update({key: value for key, value in (file_values or {}).items() if value is not None})
    for env_name, key in ENVIRONMENT_KEYS.items():
        if environ.get(env_name):
            merged[key] = environ[env_name]
    merged.update({key: value for key, value in (cli_values or {}).items() if value is not None})
    return merged


def resolve_log_file(
    cli_values: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    file_values: Optional[Mapping[str, Any]] = None,
) -> str:
    return str(merge_sources(cli_values, environ, file_values)["log_file"] or DEFAULT_LOG_FILE)


def build_configuration(
    cli_values: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    file_values: Optional[Mapping[str, Any]] = None,
) -> Configuration:
    merged = merge_sources(cli_values, environ, file_values)
    return Configuration(
        install_dir=normalize_directory(merged["install_dir"], "Installation"),
        backup_dir=normalize_directory(merged["backup_dir"], "Backup"),
        log_file=str(merged["log_file"]),
        lock_file=str(merged["lock_file"]),
        skip_backup=parse_bool(merged["skip_backup"], "skip_backup"),
        timeout_seconds=parse_timeout(merged["timeout"]),
        require_root=parse_bool(merged["require_root"], "require_root"),
        verbose=parse_bool(merged["verbose"], "verbose"),
    )
