import logging
import subprocess
from typing import List, Optional

import requests
from rich.console import Console

from .errors import ComposeSyntaxError, UpdaterError
from .errors_catalog import actionable_error
from .models import BackupResult, Configuration, InstallationHandle, RunSummary, UpdateOutcome
from .services.archive import ArchiveService
from .services.backup import BackupEngine
from .services.command_runner import CommandRunner
from .services.compose import ComposeAdapter, detect_compose_command
from .services.filesystem import FileSystemService
from .services.locking import ConcurrencyGuard
from .services.manifest import ManifestService
from .services.paths import PathResolver
from .services.preflight import PreflightService
from .services.update import UpdateOrchestrator
from .services.workflow_export import WorkflowExportService

console = Console()
logger = logging.getLogger("n8nupdater")


class N8nUpdater:
    def __init__(self, config: Configuration, path_resolver: Optional[PathResolver] = None):
        self.config = config
        self.summary = RunSummary(backup_skipped=config.skip_backup)

        self.command_runner = CommandRunner(logger=logger)
        self.filesystem_service = FileSystemService(logger=logger)
        self.archive_service = ArchiveService()
        self.manifest_service = ManifestService(logger=logger, filesystem_service=self.filesystem_service)
        self.workflow_export_service = WorkflowExportService(logger=logger, requests_module=requests)
        self.preflight_service = PreflightService(logger=logger, run_cmd=self._run_cmd)
        self.path_resolver = path_resolver or PathResolver(logger=logger)

        self.compose_cmd: List[str] = []
        self.compose: Optional[ComposeAdapter] = None

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output)

    def _get_docker_compose_cmd(self) -> List[str]:
        return detect_compose_command(subprocess)

    def _build_compose(self, installation: InstallationHandle) -> ComposeAdapter:
        return ComposeAdapter(
            compose_cmd=self.compose_cmd,
            project_dir=installation.path,
            command_runner=self.command_runner,
            logger=logger,
        )

    def _build_guard(self) -> ConcurrencyGuard:
        return ConcurrencyGuard(self.config.lock_file, logger=logger)

    def validate_environment(self):
        self.preflight_service.check_privileges(self.config.require_root)
        self.preflight_service.require_command("docker")
        self.compose_cmd = self._get_docker_compose_cmd()
        logger.info("Using Docker Compose command: %s", " ".join(self.compose_cmd))
        self.preflight_service.check_daemon()

    def resolve_installation(self) -> InstallationHandle:
        installation = self.path_resolver.resolve(self.config.install_dir)
        self.compose = self._build_compose(installation)

        console.print("[cyan]Validating docker-compose configuration...[/cyan]")
        if not self.compose.config_check(installation.compose_file):
            raise ComposeSyntaxError(actionable_error("compose_syntax", path=installation.compose_path))
        logger.info("Docker Compose configuration is valid")
        return installation

    def backup(self, installation: InstallationHandle) -> BackupResult:
        engine = BackupEngine(
            compose=self.compose,
            logger=logger,
            console=console,
            archive_service=self.archive_service,
            manifest_service=self.manifest_service,
            workflow_export_service=self.workflow_export_service,
            preflight_service=self.preflight_service,
        )
        result = engine.run(installation, self.config.backup_dir)
        if result.succeeded:
            logger.info("Backup completed successfully")
            logger.info("  Location: %s", result.path)
            logger.info("  Size: %s", self.filesystem_service.human_size(result.path))
        else:
            logger.error("Backup failed, but continuing with update...")
        return result

    def update(self) -> UpdateOutcome:
        orchestrator = UpdateOrchestrator(
            compose=self.compose,
            logger=logger,
            console=console,
            timeout_seconds=self.config.timeout_seconds,
        )
        return orchestrator.run()

    def print_summary(self):
        summary = self.summary
        console.rule("[bold]Update Summary[/bold]")

        if summary.backup_skipped:
            console.print("  Backup: [yellow]Skipped (--skip-backup flag used)[/yellow]")
        elif summary.backup is None:
            console.print("  Backup: [dim]Not attempted[/dim]")
        elif summary.backup.succeeded:
            console.print("  Backup: [green]Created successfully[/green]")
            console.print(f"    Location: {summary.backup.path}")
            console.print(f"    Size: {self.filesystem_service.human_size(summary.backup.path)}")
            console.print(f"    Artifacts: {len(summary.backup.artifacts)}")
        else:
            console.print("  Backup: [red]Failed (but update continued)[/red]")

        outcome = summary.update
        if outcome is not None:
            console.print(f"  Docker Images: {self._mark(outcome.images_pulled, 'Pulled')}")
            console.print(f"  Containers: {self._mark(outcome.old_containers_removed, 'Stopped and removed')}")
            console.print(f"  Containers: {self._mark(outcome.new_containers_started, 'Started with new images')}")
            if outcome.degraded:
                console.print(
                    f"  Container Status: [yellow]Degraded, {outcome.failed_container_count} "
                    "container(s) exited[/yellow]"
                )
            else:
                console.print("  Container Status: [green]All containers running[/green]")

    @staticmethod
    def _mark(ok: bool, label: str) -> str:
        return f"[green]{label}[/green]" if ok else f"[yellow]{label}: incomplete[/yellow]"

    def _log_summary(self):
        summary = self.summary
        if summary.backup_skipped:
            logger.info("Summary: backup skipped (--skip-backup flag used)")
        elif summary.backup is not None:
            logger.info(
                "Summary: backup %s%s",
                "created" if summary.backup.succeeded else "failed",
                f" at {summary.backup.path}" if summary.backup.succeeded else "",
            )
        if summary.update is not None:
            logger.info(
                "Summary: images pulled=%s, removed=%s, started=%s, failed containers=%s",
                summary.update.images_pulled,
                summary.update.old_containers_removed,
                summary.update.new_containers_started,
                summary.update.failed_container_count,
            )
            if summary.update.degraded:
                logger.warning("Summary: container status degraded, some containers may have issues")

    def run(self) -> int:
        summary = self.summary

        try:
            console.rule("[bold]n8n Updater - Starting Update Process[/bold]")
            logger.info("Installation directory: %s", self.config.install_dir)
            logger.info("Backup directory: %s", self.config.backup_dir)
            logger.info("Log file: %s", self.config.log_file)

            self.validate_environment()
            installation = self.resolve_installation()

            with self._build_guard():
                if self.config.skip_backup:
                    logger.info("SKIP: Backup step (--skip-backup flag used)")
                else:
                    summary.backup = self.backup(installation)

                summary.update = self.update()

            summary.status = "degraded" if summary.update.degraded else "success"
            summary.exit_code = 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled.[/bold red]")
            logger.error("Operation cancelled by signal")
            summary.status = "aborted"
            summary.error = "Operation cancelled."
            summary.exit_code = 1
        except UpdaterError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            summary.status = "failed"
            summary.error = str(exc)
            summary.exit_code = 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            summary.status = "failed"
            summary.error = str(exc)
            summary.exit_code = 1
        finally:
            self.print_summary()
            self._log_summary()
            if summary.exit_code == 0:
                logger.info("Please verify the version number in your n8n web UI to confirm the update.")
                logger.info(
                    "Update process completed successfully%s",
                    " (with warnings)" if summary.status == "degraded" else "",
                )
            else:
                logger.error("Update process FAILED: %s", summary.error or summary.status)

        return summary.exit_code
