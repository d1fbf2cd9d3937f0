import os

import pytest

from n8nupdater.errors import InstallationNotFound
from n8nupdater.services.paths import PathResolver


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


def _make_install(path, compose_name="docker-compose.yml", env=False):
    path.mkdir(parents=True, exist_ok=True)
    (path / compose_name).write_text("services: {}\n", encoding="utf-8")
    if env:
        (path / ".env").write_text("N8N_API_KEY=secret\n", encoding="utf-8")
    return path


def _resolver(tmp_path, fallbacks, scan_root=None):
    return PathResolver(
        logger=DummyLogger(),
        fallback_dirs=[str(path) for path in fallbacks],
        scan_root=str(scan_root or tmp_path / "scan"),
    )


def test_existing_candidate_is_accepted(tmp_path):
    install = _make_install(tmp_path / "custom", compose_name="docker-compose.yaml", env=True)
    resolver = _resolver(tmp_path, [])

    handle = resolver.resolve(str(install))

    assert handle.path == str(install)
    assert handle.compose_file == "docker-compose.yaml"
    assert handle.has_env_file is True


def test_first_fallback_with_compose_file_wins(tmp_path):
    without_compose = tmp_path / "opt" / "n8n-docker-caddy"
    without_compose.mkdir(parents=True)
    second = _make_install(tmp_path / "opt" / "n8n")
    third = _make_install(tmp_path / "opt" / "docker" / "n8n")
    resolver = _resolver(tmp_path, [without_compose, second, third])

    handle = resolver.resolve(str(tmp_path / "missing"))

    assert handle.path == str(second)


def test_scan_finds_matching_directory_when_fallbacks_fail(tmp_path):
    scan_root = tmp_path / "scan"
    _make_install(scan_root / "apps" / "other")
    match = _make_install(scan_root / "apps" / "my-n8n-stack")
    resolver = _resolver(tmp_path, [tmp_path / "nope"], scan_root=scan_root)

    handle = resolver.resolve(str(tmp_path / "missing"))

    assert handle.path == str(match)


def test_scan_respects_depth_limit(tmp_path):
    scan_root = tmp_path / "scan"
    _make_install(scan_root / "a" / "b" / "c" / "n8n")
    resolver = _resolver(tmp_path, [], scan_root=scan_root)

    with pytest.raises(InstallationNotFound, match="Could not locate"):
        resolver.resolve(str(tmp_path / "missing"))


def test_scan_matches_docker_pattern_case_insensitive(tmp_path):
    scan_root = tmp_path / "scan"
    match = _make_install(scan_root / "Docker-Apps")
    resolver = _resolver(tmp_path, [], scan_root=scan_root)

    assert resolver.resolve(str(tmp_path / "missing")).path == str(match)


def test_existing_candidate_without_compose_file_is_rejected(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    _make_install(tmp_path / "fallback")
    resolver = _resolver(tmp_path, [tmp_path / "fallback"])

    with pytest.raises(InstallationNotFound, match="not found in"):
        resolver.resolve(str(empty))


def test_both_compose_files_is_ambiguous(tmp_path):
    install = _make_install(tmp_path / "install")
    (install / "docker-compose.yaml").write_text("services: {}\n", encoding="utf-8")

    with pytest.raises(InstallationNotFound, match="Both docker-compose.yml"):
        _resolver(tmp_path, []).resolve(str(install))


@pytest.mark.skipif(os.geteuid() == 0, reason="root can read any directory")
def test_unreadable_installation_is_rejected(tmp_path):
    install = _make_install(tmp_path / "locked")
    install.chmod(0o000)
    try:
        with pytest.raises(InstallationNotFound, match="Cannot read"):
            _resolver(tmp_path, []).resolve(str(install))
    finally:
        install.chmod(0o755)
