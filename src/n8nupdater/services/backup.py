"""Best-effort backup of an n8n installation."""

import os
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from n8nupdater.constants import (
    APP_NAME,
    BACKUP_TIMESTAMP_FORMAT,
    COMPOSE_FILENAMES,
    CONFIG_ARCHIVE_NAME,
    DATABASE_EXTENSIONS,
    DATABASE_SCAN_MAX_DEPTH,
    DISK_SPACE_WARNING_MB,
    DOCKER_VOLUME_DATA_DIR,
    ENV_FILENAME,
    MANIFEST_FILENAME,
    SERVICE_NAME,
    WORKFLOWS_FILENAME,
)
from n8nupdater.errors import BackupStepFailure, UpdaterError
from n8nupdater.models import BackupResult, BackupStepOutcome, ContainerDescriptor, InstallationHandle


def collect_mount_sources(containers: Iterable[ContainerDescriptor]) -> List[str]:
    """Distinct mount sources across a container snapshot, in sorted order."""
    sources = set()
    for container in containers:
        for mount in container.mounts:
            if mount:
                sources.add(mount.rstrip(os.sep) or os.sep)
    return sorted(sources)


def volume_label(source: str) -> str:
    """Name a mount for its archive; named volumes all end in ``_data``."""
    leaf = os.path.basename(source) or "root"
    if leaf == DOCKER_VOLUME_DATA_DIR:
        return os.path.basename(os.path.dirname(source)) or leaf
    return leaf


def unique_archive_name(prefix: str, name: str, taken: Dict[str, int]) -> str:
    count = taken.get(name, 0)
    taken[name] = count + 1
    if count == 0:
        return f"{prefix}-{name}.tar.gz"
    return f"{prefix}-{name}-{count}.tar.gz"


def find_database_files(root: str, max_depth: int = DATABASE_SCAN_MAX_DEPTH) -> List[str]:
    matches = []
    root_depth = root.rstrip(os.sep).count(os.sep)
    for current, dirnames, files in os.walk(root, onerror=lambda _err: None):
        dirnames.sort()
        depth = current.rstrip(os.sep).count(os.sep) - root_depth
        if depth + 1 >= max_depth:
            dirnames[:] = []
        for file_name in sorted(files):
            if file_name.lower().endswith(DATABASE_EXTENSIONS):
                path = os.path.join(current, file_name)
                if os.path.isfile(path) and os.access(path, os.R_OK):
                    matches.append(path)
    return matches


class BackupEngine:
    """Builds a timestamped backup bundle from whatever sources are available.

    Each step is independent: a failure is logged as a warning and recorded
    in the returned BackupResult, and the remaining steps still run. The
    bundle counts as failed only when it ends up without any artifact.
    """

    def __init__(
        self,
        compose,
        logger,
        console,
        archive_service,
        manifest_service,
        workflow_export_service,
        preflight_service,
        clock: Callable[[], datetime] = datetime.now,
        service_name: str = SERVICE_NAME,
    ):
        self.compose = compose
        self.logger = logger
        self.console = console
        self.archive_service = archive_service
        self.manifest_service = manifest_service
        self.workflow_export_service = workflow_export_service
        self.preflight_service = preflight_service
        self.clock = clock
        self.service_name = service_name

    def run(self, installation: InstallationHandle, backup_root: str) -> BackupResult:
        self.console.print("[cyan]Creating backup of n8n data...[/cyan]")
        self.logger.info("Creating backup of n8n data...")

        if not self.preflight_service.check_disk_space(backup_root, DISK_SPACE_WARNING_MB):
            self.logger.warning("Continuing with backup despite low disk space...")

        created_at = self.clock()
        try:
            bundle_path = self.create_bundle_dir(backup_root, created_at)
        except OSError as exc:
            self.logger.error("Failed to create backup directory under %s: %s", backup_root, exc)
            return BackupResult(path=None, succeeded=False)

        self.logger.info("Backup location: %s", bundle_path)
        result = BackupResult(path=bundle_path)

        try:
            running_id = self._first_running_container()
            result.container_identity = running_id or self._configured_service_name() or ""
        except UpdaterError as exc:
            self.logger.warning("Could not query n8n container: %s", exc)
            running_id = None
        if not running_id:
            self.logger.warning("n8n container not running.")

        self._run_step(result, "workflows", self.export_workflows, installation, bundle_path, running_id)
        self._run_step(result, "volumes", self.archive_volumes, bundle_path)
        self._run_step(result, "config", self.archive_config, installation, bundle_path)
        self._run_step(result, "databases", self.archive_databases, installation, bundle_path)

        try:
            self.manifest_service.write(
                bundle_path=bundle_path,
                installation_path=installation.path,
                container_identity=result.container_identity,
                created_at=created_at,
            )
        except OSError as exc:
            self.logger.warning("Could not write %s: %s", MANIFEST_FILENAME, exc)

        result.artifacts = self.produced_artifacts(bundle_path)
        result.succeeded = bool(result.artifacts)
        if result.succeeded:
            self.logger.info("Backup completed with %s artifact(s)", len(result.artifacts))
        else:
            self.logger.error("Backup directory is empty or was not created properly")
        return result

    def create_bundle_dir(self, backup_root: str, created_at: datetime) -> str:
        base_name = f"{APP_NAME}-backup-{created_at.strftime(BACKUP_TIMESTAMP_FORMAT)}"
        os.makedirs(backup_root, exist_ok=True)

        candidate = os.path.join(backup_root, base_name)
        suffix = 0
        while True:
            try:
                os.mkdir(candidate)
                return candidate
            except FileExistsError:
                suffix += 1
                candidate = os.path.join(backup_root, f"{base_name}-{suffix}")

    def produced_artifacts(self, bundle_path: str) -> List[str]:
        try:
            names = os.listdir(bundle_path)
        except OSError:
            return []
        return sorted(name for name in names if name != MANIFEST_FILENAME)

    def _run_step(self, result: BackupResult, name: str, callback, *args):
        try:
            outcome = callback(*args)
        except (UpdaterError, OSError) as exc:
            self.logger.warning("Backup step '%s' failed: %s", name, exc)
            outcome = BackupStepOutcome(name=name, status="failed", detail=str(exc))
        result.steps.append(outcome)
        return outcome

    def _first_running_container(self) -> Optional[str]:
        ids = self.compose.container_ids(self.service_name)
        return ids[0] if ids else None

    def _configured_service_name(self) -> Optional[str]:
        for service in self.compose.services():
            if self.service_name in service.lower():
                return service
        return None

    def export_workflows(
        self,
        installation: InstallationHandle,
        bundle_path: str,
        running_id: Optional[str],
    ) -> BackupStepOutcome:
        if not running_id:
            return BackupStepOutcome("workflows", "skipped", "n8n container is not running")

        self.logger.info("Attempting to export workflows via API...")
        api_key = self.workflow_export_service.discover_api_key(self.compose, installation.path)
        if not api_key:
            self.logger.info("API key not found, skipping API export")
            return BackupStepOutcome("workflows", "skipped", "API key not found")

        url = self.workflow_export_service.build_url(self.compose)
        dest_path = os.path.join(bundle_path, WORKFLOWS_FILENAME)
        try:
            self.workflow_export_service.export(url, api_key, dest_path)
        except (BackupStepFailure, OSError):
            if os.path.exists(dest_path):
                os.remove(dest_path)
            raise

        self.logger.info("Workflows exported successfully via API")
        return BackupStepOutcome("workflows", "success", artifacts=[WORKFLOWS_FILENAME])

    def archive_volumes(self, bundle_path: str) -> BackupStepOutcome:
        self.logger.info("Backing up Docker volumes and data directories...")
        containers = self.compose.inspect(self.compose.container_ids())
        sources = collect_mount_sources(containers)

        produced: List[str] = []
        failures: List[str] = []
        taken: Dict[str, int] = {}
        for source in sources:
            if not (os.path.isdir(source) and os.access(source, os.R_OK)):
                self.logger.debug("Skipping mount that is not a readable directory: %s", source)
                continue
            leaf = volume_label(source)
            archive_name = unique_archive_name("volume", leaf, taken)
            self.logger.info("Backing up volume: %s", leaf)
            try:
                self.archive_service.archive_path_leaf(os.path.join(bundle_path, archive_name), source)
            except BackupStepFailure as exc:
                self.logger.warning("Failed to backup volume %s: %s", leaf, exc)
                failures.append(leaf)
                continue
            produced.append(archive_name)

        if not sources:
            return BackupStepOutcome("volumes", "skipped", "no mounted paths found")
        status = "failed" if failures and not produced else "success"
        detail = f"failed: {', '.join(failures)}" if failures else ""
        return BackupStepOutcome("volumes", status, detail, produced)

    def archive_config(self, installation: InstallationHandle, bundle_path: str) -> BackupStepOutcome:
        self.logger.info("Backing up installation configuration...")
        members = [
            name
            for name in COMPOSE_FILENAMES + (ENV_FILENAME,)
            if os.path.isfile(os.path.join(installation.path, name))
        ]
        if not members:
            return BackupStepOutcome("config", "skipped", "no configuration files found")

        self.archive_service.create_tar_gz(
            os.path.join(bundle_path, CONFIG_ARCHIVE_NAME),
            installation.path,
            members,
        )
        return BackupStepOutcome("config", "success", ", ".join(members), [CONFIG_ARCHIVE_NAME])

    def archive_databases(self, installation: InstallationHandle, bundle_path: str) -> BackupStepOutcome:
        self.logger.info("Checking for database files...")
        databases = find_database_files(installation.path)
        if not databases:
            return BackupStepOutcome("databases", "skipped", "no database files found")

        produced: List[str] = []
        failures: List[str] = []
        taken: Dict[str, int] = {}
        for db_path in databases:
            db_name = os.path.basename(db_path)
            archive_name = unique_archive_name("database", db_name, taken)
            self.logger.info("Backing up database: %s", db_name)
            try:
                self.archive_service.archive_path_leaf(os.path.join(bundle_path, archive_name), db_path)
            except BackupStepFailure as exc:
                self.logger.warning("Failed to backup database %s: %s", db_name, exc)
                failures.append(db_name)
                continue
            produced.append(archive_name)

        status = "failed" if failures and not produced else "success"
        detail = f"failed: {', '.join(failures)}" if failures else ""
        return BackupStepOutcome("databases", status, detail, produced)
