"""Docker Compose adapter for n8nupdater.

Wraps the two command forms of Compose (`docker compose` v2 and the
standalone `docker-compose` v1) behind one interface. The form is selected
once and every call runs with the installation directory as working
directory.
"""

import json
import subprocess
from typing import Iterable, List, Optional

from n8nupdater.errors import CommandTimeout, ComposeOutputError, ComposeToolMissing, UpdaterError
from n8nupdater.errors_catalog import actionable_error
from n8nupdater.models import ContainerDescriptor


def detect_compose_command(subprocess_module=subprocess) -> List[str]:
    try:
        subprocess_module.run(["docker", "compose", "version"], check=True, capture_output=True)
        return ["docker", "compose"]
    except (subprocess_module.CalledProcessError, FileNotFoundError):
        try:
            subprocess_module.run(["docker-compose", "--version"], check=True, capture_output=True)
            return ["docker-compose"]
        except (subprocess_module.CalledProcessError, FileNotFoundError):
            raise ComposeToolMissing(actionable_error("compose_missing"))


def parse_ps_output(output: str) -> List[ContainerDescriptor]:
    """Parse `ps --format json` output.

    Compose v2 releases before 2.21 print a single JSON array, later ones
    print one JSON object per line. Anything else raises ComposeOutputError.
    """
    text = (output or "").strip()
    if not text:
        return []

    try:
        if text.startswith("["):
            records = json.loads(text)
        else:
            records = [json.loads(line) for line in text.splitlines() if line.strip()]
    except ValueError as exc:
        raise ComposeOutputError(f"Unparseable compose status output: {exc}") from exc

    if not isinstance(records, list) or not all(isinstance(item, dict) for item in records):
        raise ComposeOutputError("Compose status output is not a list of container records.")

    return [
        ContainerDescriptor(
            container_id=str(record.get("ID", "")),
            name=str(record.get("Name", "")),
            service=str(record.get("Service", "")),
            state=str(record.get("State", "")).lower(),
        )
        for record in records
    ]


def parse_inspect_output(output: str) -> List[ContainerDescriptor]:
    try:
        records = json.loads(output or "[]")
    except ValueError as exc:
        raise ComposeOutputError(f"Unparseable docker inspect output: {exc}") from exc

    containers = []
    for record in records:
        mounts = tuple(
            mount.get("Source", "")
            for mount in record.get("Mounts") or []
            if mount.get("Source")
        )
        state = record.get("State") or {}
        containers.append(
            ContainerDescriptor(
                container_id=str(record.get("Id", "")),
                name=str(record.get("Name", "")).lstrip("/"),
                service=str(
                    ((record.get("Config") or {}).get("Labels") or {}).get(
                        "com.docker.compose.service", ""
                    )
                ),
                state=str(state.get("Status", "")).lower(),
                mounts=mounts,
            )
        )
    return containers


class ComposeAdapter:
    """Maps compose operations onto the selected command form."""

    def __init__(self, compose_cmd: List[str], project_dir: str, command_runner, logger):
        self.compose_cmd = list(compose_cmd)
        self.project_dir = project_dir
        self.command_runner = command_runner
        self.logger = logger

    def _run(self, args: Iterable[str], timeout: Optional[float] = None, capture_output: bool = True):
        return self.command_runner.run(
            self.compose_cmd + list(args),
            check=False,
            capture_output=capture_output,
            timeout=timeout,
            cwd=self.project_dir,
        )

    def config_check(self, compose_file: str) -> bool:
        result = self._run(["-f", compose_file, "config", "--quiet"])
        if result.returncode != 0:
            self.logger.debug("Compose config check failed: %s", (result.stderr or "").strip())
        return result.returncode == 0

    def pull(self, timeout: Optional[float]) -> bool:
        try:
            result = self._run(["pull", "--quiet"], timeout=timeout, capture_output=False)
        except CommandTimeout as exc:
            self.logger.error(str(exc))
            return False
        return result.returncode == 0

    def down(self, remove_orphans: bool = True) -> bool:
        args = ["down"]
        if remove_orphans:
            args.append("--remove-orphans")
        return self._run(args, capture_output=False).returncode == 0

    def up(self, detached: bool = True) -> bool:
        args = ["up"]
        if detached:
            args.append("-d")
        return self._run(args, capture_output=False).returncode == 0

    def ps(self) -> List[ContainerDescriptor]:
        result = self._run(["ps", "--all", "--format", "json"])
        if result.returncode != 0:
            raise ComposeOutputError(
                f"Compose status query failed ({result.returncode}): {(result.stderr or '').strip()}"
            )
        return parse_ps_output(result.stdout)

    def exec(self, service: str, command: List[str]) -> Optional[str]:
        result = self._run(["exec", "-T", service] + list(command))
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip()

    def port(self, service: str, container_port: int) -> Optional[str]:
        result = self._run(["port", service, str(container_port)])
        if result.returncode != 0:
            return None
        lines = (result.stdout or "").strip().splitlines()
        return lines[0].strip() if lines else None

    def container_ids(self, service: Optional[str] = None) -> List[str]:
        args = ["ps", "-q"]
        if service:
            args.append(service)
        result = self._run(args)
        if result.returncode != 0:
            return []
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def services(self) -> List[str]:
        result = self._run(["config", "--services"])
        if result.returncode != 0:
            return []
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def inspect(self, container_ids: List[str]) -> List[ContainerDescriptor]:
        if not container_ids:
            return []
        try:
            result = self.command_runner.run(
                ["docker", "inspect"] + list(container_ids),
                check=True,
                capture_output=True,
                cwd=self.project_dir,
            )
        except UpdaterError as exc:
            raise ComposeOutputError(f"docker inspect failed: {exc}") from exc
        return parse_inspect_output(result.stdout)
