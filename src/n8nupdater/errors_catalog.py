"""Actionable error catalog for n8nupdater."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "not_root": {
        "what": "This tool must be run as root.",
        "next": "Run it from root's crontab or pass `--allow-non-root` if docker access is granted otherwise.",
    },
    "command_not_found": {
        "what": "Required command not found: {command}",
        "next": "Install it and make sure it is on the PATH used by cron.",
    },
    "docker_daemon_down": {
        "what": "Docker daemon is not running.",
        "next": "Start the docker service (`systemctl start docker`) and retry.",
    },
    "compose_missing": {
        "what": "Docker Compose is not available.",
        "next": "Install Docker Compose v2 (`docker compose`) or v1 (`docker-compose`) and try again.",
    },
    "installation_not_found": {
        "what": "Could not locate an n8n installation (tried {path}).",
        "next": "Set INSTALL_DIR or use `--install-dir` to point at the directory holding docker-compose.yml.",
    },
    "installation_unreadable": {
        "what": "Cannot read installation directory: {path}",
        "next": "Check the directory permissions for the user running the updater.",
    },
    "compose_file_missing": {
        "what": "docker-compose.yml or docker-compose.yaml not found in {path}",
        "next": "Point `--install-dir` at the directory that contains the compose file.",
    },
    "compose_file_ambiguous": {
        "what": "Both docker-compose.yml and docker-compose.yaml exist in {path}",
        "next": "Remove the unused compose file so the deployment definition is unambiguous.",
    },
    "compose_syntax": {
        "what": "Compose file {path} has syntax errors.",
        "next": "Run `docker compose config` in the installation directory to see the details.",
    },
    "lock_contention": {
        "what": "Another instance is already running (PID: {pid}).",
        "next": "Wait for it to finish, or remove {path} if that process is not the updater.",
    },
    "lock_unwritable": {
        "what": "Cannot create lock file: {path}",
        "next": "Check that the lock directory exists and is writable, or use `--lock-file`.",
    },
    "pull_failed": {
        "what": "Failed to pull Docker images.",
        "next": "Check network access to the registry; the running deployment was left untouched.",
    },
    "start_failed": {
        "what": "Failed to start containers.",
        "next": "Inspect `docker compose logs` in {path}; the deployment may be stopped.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
