import pytest

from n8nupdater.errors import ConfigError
from n8nupdater.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / "n8nupdater.yml"
    config_file.write_text(
        "install_dir: /opt/n8n\ntimeout: 900\nskip_backup: true\n",
        encoding="utf-8",
    )

    loaded = ConfigLoader().load(str(config_file))

    assert loaded["install_dir"] == "/opt/n8n"
    assert loaded["timeout"] == 900
    assert loaded["skip_backup"] is True


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / "n8nupdater.yml"
    config_file.write_text("unknown_key: true\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Unknown configuration keys"):
        ConfigLoader().load(str(config_file))


def test_config_loader_rejects_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Config file not found"):
        ConfigLoader().load(str(tmp_path / "missing.yml"))


def test_config_loader_returns_empty_mapping_without_path():
    assert ConfigLoader().load(None) == {}
