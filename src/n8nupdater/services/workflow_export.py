"""Workflow export through the n8n public API."""

import json
import os
from typing import Optional, Tuple

import requests

from n8nupdater.constants import (
    API_CONTAINER_PORT,
    API_EXPORT_TIMEOUT_SECONDS,
    API_KEY_VARIABLE,
    API_WORKFLOWS_PATH,
    ENV_FILENAME,
    SERVICE_NAME,
)
from n8nupdater.errors import BackupStepFailure

WILDCARD_HOSTS = {"", "0.0.0.0", "::", "[::]"}


def read_env_value(env_path: str, key: str) -> Optional[str]:
    """Return ``key`` from a dotenv-style file, with surrounding quotes stripped."""
    try:
        with open(env_path, "r", encoding="utf-8") as file_obj:
            lines = file_obj.readlines()
    except OSError:
        return None

    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, value = line.split("=", 1)
        name = name.strip()
        if name.startswith("export "):
            name = name[len("export "):].strip()
        if name.upper() != key.upper():
            continue
        value = value.strip().strip('"').strip("'")
        return value or None
    return None


def split_host_port(binding: Optional[str], default_port: int) -> Tuple[str, int]:
    if not binding:
        return "localhost", default_port

    host, _, port = binding.strip().rpartition(":")
    if host in WILDCARD_HOSTS:
        host = "localhost"
    try:
        return host, int(port)
    except ValueError:
        return host, default_port


class WorkflowExportService:
    """Fetches the workflow list of a running n8n instance."""

    def __init__(
        self,
        logger,
        requests_module=requests,
        timeout: float = API_EXPORT_TIMEOUT_SECONDS,
        service_name: str = SERVICE_NAME,
    ):
        self.logger = logger
        self.requests = requests_module
        self.timeout = timeout
        self.service_name = service_name

    def discover_api_key(self, compose, install_dir: str) -> Optional[str]:
        api_key = compose.exec(self.service_name, ["printenv", API_KEY_VARIABLE])
        if api_key:
            return api_key
        return read_env_value(os.path.join(install_dir, ENV_FILENAME), API_KEY_VARIABLE)

    def build_url(self, compose) -> str:
        host, port = split_host_port(
            compose.port(self.service_name, API_CONTAINER_PORT),
            API_CONTAINER_PORT,
        )
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"http://{host}:{port}{API_WORKFLOWS_PATH}"

    def export(self, url: str, api_key: str, dest_path: str):
        try:
            response = self.requests.get(
                url,
                headers={"X-N8N-API-KEY": api_key, "Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise BackupStepFailure(f"API export failed: {exc}") from exc

        try:
            json.loads(response.text)
        except ValueError as exc:
            raise BackupStepFailure("API returned invalid JSON, discarding export") from exc

        with open(dest_path, "w", encoding="utf-8") as file_obj:
            file_obj.write(response.text)
