import subprocess
from collections import namedtuple

import pytest

from n8nupdater.errors import ConfigError, UpdaterError
from n8nupdater.services.preflight import PreflightService, nearest_existing_path

Usage = namedtuple("Usage", "total used free")


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def warning(self, message, *args):
        self.warnings.append(message % args if args else message)


def _service(run_cmd=None, which=None, free_mb=1024, euid=0):
    return PreflightService(
        logger=DummyLogger(),
        run_cmd=run_cmd or (lambda cmd, **_kwargs: subprocess.CompletedProcess(cmd, 0)),
        which=which or (lambda name: f"/usr/bin/{name}"),
        disk_usage=lambda _path: Usage(0, 0, free_mb * 1024 * 1024),
        geteuid=lambda: euid,
    )


def test_privileges_required_unless_disabled():
    with pytest.raises(ConfigError, match="must be run as root"):
        _service(euid=1000).check_privileges(require_root=True)

    _service(euid=1000).check_privileges(require_root=False)
    _service(euid=0).check_privileges(require_root=True)


def test_require_command_raises_when_missing():
    service = _service(which=lambda _name: None)

    with pytest.raises(ConfigError, match="Required command not found: docker"):
        service.require_command("docker")


def test_check_daemon_raises_when_docker_info_fails():
    service = _service(run_cmd=lambda cmd, **_kwargs: subprocess.CompletedProcess(cmd, 1))

    with pytest.raises(ConfigError, match="daemon is not running"):
        service.check_daemon()


def test_check_daemon_wraps_runner_errors():
    def failing(*_args, **_kwargs):
        raise UpdaterError("Required command not found: docker")

    with pytest.raises(ConfigError):
        _service(run_cmd=failing).check_daemon()


def test_low_disk_space_is_advisory(tmp_path):
    service = _service(free_mb=50)

    assert service.check_disk_space(str(tmp_path / "not" / "yet"), 100) is False
    assert "Low disk space: 50MB available (recommended: 100MB+)" in service.logger.warnings
    assert _service(free_mb=500).check_disk_space(str(tmp_path), 100) is True


def test_nearest_existing_path_walks_up(tmp_path):
    assert nearest_existing_path(str(tmp_path / "a" / "b")) == str(tmp_path)
