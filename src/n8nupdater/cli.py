import logging
import os
import sys

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILE
from .config import build_configuration, resolve_log_file
from .core import N8nUpdater, UpdaterError
from .services.config_loader import ConfigLoader

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=True, show_path=False)],
)


def _attach_log_file(logger: logging.Logger, log_file: str, verbose: bool) -> logging.Handler:
    """Append timestamped records to ``log_file``, or to stderr when it is unwritable."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    fallback_reason = None
    try:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as exc:
        fallback_reason = exc
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if fallback_reason is not None:
        logger.warning("Cannot write to log file %s (%s); logging to stderr", log_file, fallback_reason)
    return handler


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class UpdaterCommand(click.Command):
    """Reports bad command-line usage with exit status 1, like any other failed run."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as exc:
            exc.exit_code = 1
            raise


@click.command(
    cls=UpdaterCommand,
    context_settings=CONTEXT_SETTINGS,
    epilog=(
        "Environment variables INSTALL_DIR, BACKUP_DIR, LOG_FILE, LOCK_FILE, SKIP_BACKUP and "
        "TIMEOUT are used when the matching option is not given.\n\n"
        "Cron example: 0 2 * * * /usr/local/bin/n8nupdater"
    ),
)
@click.option(
    "--skip-backup",
    is_flag=True,
    default=None,
    help="Skip backup step (not recommended).",
)
@click.option(
    "--install-dir",
    required=False,
    metavar="PATH",
    help="Installation directory (default: /opt/n8n-docker-caddy).",
)
@click.option(
    "--backup-dir",
    required=False,
    metavar="PATH",
    help="Backup directory (default: /root/n8n-backups).",
)
@click.option(
    "--log-file",
    required=False,
    metavar="PATH",
    help="Log file path (default: /var/log/n8nupdater.log).",
)
@click.option(
    "--lock-file",
    required=False,
    metavar="PATH",
    help="Lock file path (default: /var/run/n8nupdater.lock).",
)
@click.option(
    "--timeout",
    required=False,
    type=int,
    default=None,
    metavar="SECONDS",
    help="Timeout for pulling images (default: 600).",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging.")
@click.option(
    "--allow-non-root",
    is_flag=True,
    default=False,
    help="Do not require running as root.",
)
def main(
    skip_backup,
    install_dir,
    backup_dir,
    log_file,
    lock_file,
    timeout,
    config,
    verbose,
    allow_non_root,
):
    """Back up and update a docker-compose n8n installation, unattended."""
    logger = logging.getLogger("n8nupdater")
    cli_values = {
        "install_dir": install_dir,
        "backup_dir": backup_dir,
        "log_file": log_file,
        "lock_file": lock_file,
        "skip_backup": skip_backup,
        "timeout": timeout,
        "verbose": verbose,
        "require_root": False if allow_non_root else None,
    }

    file_values = {}
    load_error = None
    try:
        resolved_config = config
        if resolved_config is None and os.path.exists(DEFAULT_CONFIG_FILE):
            resolved_config = DEFAULT_CONFIG_FILE
        file_values = ConfigLoader().load(resolved_config)
    except UpdaterError as exc:
        load_error = exc

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler = _attach_log_file(logger, resolve_log_file(cli_values, os.environ, file_values), bool(verbose))
    try:
        try:
            if load_error is not None:
                raise load_error
            configuration = build_configuration(cli_values=cli_values, environ=os.environ, file_values=file_values)
        except UpdaterError as exc:
            logger.error("Update process FAILED: %s", exc)
            raise click.ClickException(str(exc)) from exc

        if configuration.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
            logger.setLevel(logging.DEBUG)
            handler.setLevel(logging.DEBUG)

        exit_code = N8nUpdater(configuration).run()
    finally:
        logger.removeHandler(handler)
        handler.close()

    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
