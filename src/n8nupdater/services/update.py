"""Pull, stop, start and verify the compose deployment."""

import time
from typing import Callable, List, Optional

from n8nupdater.constants import FAILED_CONTAINER_STATES, SETTLE_DELAY_SECONDS
from n8nupdater.errors import PullFailure, StartFailure, TeardownFailure, UpdaterError
from n8nupdater.errors_catalog import actionable_error
from n8nupdater.models import ContainerDescriptor, UpdateOutcome


def count_failed_containers(containers: List[ContainerDescriptor]) -> int:
    return sum(1 for container in containers if container.state in FAILED_CONTAINER_STATES)


class UpdateOrchestrator:
    """Runs the fixed pull -> stop -> start -> verify pipeline.

    Pull and start failures are fatal and raised. A failed teardown is only
    a warning because the start stage usually recovers from it, and exited
    containers after start mark the run as degraded rather than failed.
    There is no retry within a run.
    """

    def __init__(
        self,
        compose,
        logger,
        console,
        timeout_seconds: int,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.compose = compose
        self.logger = logger
        self.console = console
        self.timeout_seconds = timeout_seconds
        self.settle_delay = settle_delay
        self.sleep = sleep or time.sleep

    def _step(self, message: str):
        self.console.print(f"[cyan]{message}[/cyan]")
        self.logger.info(message)

    def run(self) -> UpdateOutcome:
        outcome = UpdateOutcome()

        self._step("Step 1/4: Pulling latest Docker images...")
        if not self.compose.pull(timeout=self.timeout_seconds):
            raise PullFailure(actionable_error("pull_failed"))
        outcome.images_pulled = True
        self.logger.info("Docker images pulled successfully")

        self._step("Step 2/4: Stopping and removing current containers...")
        try:
            if not self.compose.down(remove_orphans=True):
                raise TeardownFailure("Some containers may not have stopped cleanly")
            outcome.old_containers_removed = True
            self.logger.info("Containers stopped and removed successfully")
        except UpdaterError as exc:
            self.logger.warning("%s, continuing...", exc)

        self._step("Step 3/4: Starting containers with new images...")
        if not self.compose.up(detached=True):
            raise StartFailure(actionable_error("start_failed", path=self.compose.project_dir))
        outcome.new_containers_started = True
        self.logger.info("Containers started successfully")

        self._step("Step 4/4: Verifying containers are running...")
        outcome.failed_container_count = self.verify()
        return outcome

    def verify(self) -> int:
        self.sleep(self.settle_delay)
        try:
            containers = self.compose.ps()
        except UpdaterError as exc:
            self.logger.warning("Could not read container status, assuming healthy: %s", exc)
            return 0

        failed = count_failed_containers(containers)
        if failed:
            self.logger.warning("Some containers may have exited. Checking status...")
            for container in containers:
                self.logger.warning(
                    "  %s (%s): %s",
                    container.name or container.container_id,
                    container.service or "-",
                    container.state or "unknown",
                )
            self.logger.warning("Please check container logs for issues")
        else:
            self.logger.info("All containers are running")
        return failed
