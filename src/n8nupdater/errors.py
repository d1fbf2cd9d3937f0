"""Domain errors for n8nupdater."""


class UpdaterError(RuntimeError):
    """Raised when the update cannot continue safely."""


class ConfigError(UpdaterError):
    """Invalid configuration or missing required tooling."""


class ComposeToolMissing(ConfigError):
    """Neither `docker compose` nor `docker-compose` is usable."""


class LockContention(UpdaterError):
    """Another live run holds the lock file."""


AlreadyRunning = LockContention


class InstallationNotFound(UpdaterError):
    """No usable n8n installation directory could be located."""


class ComposeSyntaxError(UpdaterError):
    """The compose file failed `config` validation."""


class ComposeOutputError(UpdaterError):
    """Compose produced output that could not be parsed."""


class CommandTimeout(UpdaterError):
    """An external command exceeded its wall-clock timeout."""


class BackupStepFailure(UpdaterError):
    """A single backup step failed; recovered inside the backup engine."""


class PullFailure(UpdaterError):
    """Images could not be pulled."""


class StartFailure(UpdaterError):
    """Containers could not be started."""


class TeardownFailure(UpdaterError):
    """Containers did not stop cleanly; recovered by the start stage."""
