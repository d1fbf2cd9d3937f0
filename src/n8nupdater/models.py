"""Shared domain models for n8nupdater."""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Configuration:
    """Resolved settings for one run; built once and never mutated."""

    install_dir: str
    backup_dir: str
    log_file: str
    lock_file: str
    skip_backup: bool = False
    timeout_seconds: int = 600
    require_root: bool = True
    verbose: bool = False


@dataclass(frozen=True)
class InstallationHandle:
    path: str
    compose_file: str
    has_env_file: bool = False

    @property
    def compose_path(self) -> str:
        return os.path.join(self.path, self.compose_file)


@dataclass(frozen=True)
class ContainerDescriptor:
    """Snapshot of a single container as reported by compose or docker inspect."""

    container_id: str
    name: str = ""
    service: str = ""
    state: str = ""
    mounts: Tuple[str, ...] = ()


@dataclass
class BackupStepOutcome:
    name: str
    status: str
    detail: str = ""
    artifacts: List[str] = field(default_factory=list)


@dataclass
class BackupResult:
    """Accumulated outcome of one backup run."""

    path: Optional[str]
    succeeded: bool = False
    steps: List[BackupStepOutcome] = field(default_factory=list)
    artifacts: List[str] = field(default_factory=list)
    container_identity: str = ""

    def step(self, name: str) -> Optional[BackupStepOutcome]:
        for outcome in self.steps:
            if outcome.name == name:
                return outcome
        return None


@dataclass
class UpdateOutcome:
    images_pulled: bool = False
    old_containers_removed: bool = False
    new_containers_started: bool = False
    failed_container_count: int = 0

    @property
    def degraded(self) -> bool:
        return self.failed_container_count > 0


@dataclass
class RunSummary:
    backup_skipped: bool = False
    backup: Optional[BackupResult] = None
    update: Optional[UpdateOutcome] = None
    status: str = "failed"
    error: Optional[str] = None
    exit_code: int = 1
