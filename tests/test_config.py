import pytest

from n8nupdater.config import build_configuration, resolve_log_file
from n8nupdater.errors import ConfigError


def test_defaults_are_used_without_other_sources():
    config = build_configuration(environ={})

    assert config.install_dir == "/opt/n8n-docker-caddy"
    assert config.backup_dir == "/root/n8n-backups"
    assert config.log_file == "/var/log/n8nupdater.log"
    assert config.lock_file == "/var/run/n8nupdater.lock"
    assert config.skip_backup is False
    assert config.timeout_seconds == 600


def test_later_sources_win():
    config = build_configuration(
        cli_values={"install_dir": "/srv/cli", "timeout": None},
        environ={"INSTALL_DIR": "/srv/env", "TIMEOUT": "120", "SKIP_BACKUP": "true"},
        file_values={"install_dir": "/srv/file", "timeout": 900, "backup_dir": "/srv/backups"},
    )

    assert config.install_dir == "/srv/cli"
    assert config.timeout_seconds == 120
    assert config.skip_backup is True
    assert config.backup_dir == "/srv/backups"


def test_paths_are_normalized():
    config = build_configuration(cli_values={"install_dir": "/opt/n8n/", "backup_dir": "/backups//n8n/"}, environ={})

    assert config.install_dir == "/opt/n8n"
    assert config.backup_dir == "/backups/n8n"


@pytest.mark.parametrize(
    "cli_values, message",
    [
        ({"install_dir": "relative/path"}, "must be absolute"),
        ({"backup_dir": ""}, "path is empty"),
        ({"timeout": "soon"}, "whole number"),
        ({"timeout": 0}, "must be positive"),
        ({"skip_backup": "maybe"}, "must be a boolean"),
    ],
)
def test_invalid_values_raise_config_error(cli_values, message):
    with pytest.raises(ConfigError, match=message):
        build_configuration(cli_values=cli_values, environ={})


def test_configuration_is_immutable():
    config = build_configuration(environ={})

    with pytest.raises(AttributeError):
        config.skip_backup = True


def test_empty_environment_values_keep_defaults():
    config = build_configuration(
        environ={"INSTALL_DIR": "", "BACKUP_DIR": "", "TIMEOUT": "", "SKIP_BACKUP": "", "LOG_FILE": ""},
    )

    assert config.install_dir == "/opt/n8n-docker-caddy"
    assert config.backup_dir == "/root/n8n-backups"
    assert config.log_file == "/var/log/n8nupdater.log"
    assert config.timeout_seconds == 600
    assert config.skip_backup is False


def test_log_file_is_resolved_without_validating_other_values():
    log_file = resolve_log_file(
        cli_values={"install_dir": "relative", "log_file": None},
        environ={"LOG_FILE": "/tmp/n8nupdater-env.log", "TIMEOUT": "soon"},
        file_values={"log_file": "/tmp/n8nupdater-file.log"},
    )

    assert log_file == "/tmp/n8nupdater-env.log"
