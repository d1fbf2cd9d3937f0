import pytest

from n8nupdater.errors import BackupStepFailure
from n8nupdater.services.workflow_export import (
    WorkflowExportService,
    read_env_value,
    split_host_port,
)


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, text, status_ok=True):
        self.text = text
        self.status_ok = status_ok

    def raise_for_status(self):
        if not self.status_ok:
            raise FakeRequestsModule.RequestException("401 Unauthorized")


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


class FakeCompose:
    def __init__(self, exec_result=None, port_result=None):
        self.exec_result = exec_result
        self.port_result = port_result

    def exec(self, _service, _command):
        return self.exec_result

    def port(self, _service, _port):
        return self.port_result


def test_read_env_value_strips_quotes(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text('# comment\nOTHER=1\nexport N8N_API_KEY="abc123"\n', encoding="utf-8")

    assert read_env_value(str(env_file), "N8N_API_KEY") == "abc123"
    assert read_env_value(str(env_file), "MISSING") is None
    assert read_env_value(str(tmp_path / "nope"), "N8N_API_KEY") is None


def test_split_host_port_maps_wildcards_to_localhost():
    assert split_host_port("0.0.0.0:5679", 5678) == ("localhost", 5679)
    assert split_host_port("127.0.0.1:5678", 5678) == ("127.0.0.1", 5678)
    assert split_host_port(None, 5678) == ("localhost", 5678)


def test_api_key_prefers_container_environment(tmp_path):
    (tmp_path / ".env").write_text("N8N_API_KEY=from-file\n", encoding="utf-8")
    service = WorkflowExportService(logger=DummyLogger())

    assert service.discover_api_key(FakeCompose(exec_result="from-container"), str(tmp_path)) == "from-container"
    assert service.discover_api_key(FakeCompose(exec_result=None), str(tmp_path)) == "from-file"


def test_build_url_uses_published_port():
    service = WorkflowExportService(logger=DummyLogger())

    assert service.build_url(FakeCompose(port_result="0.0.0.0:15678")) == (
        "http://localhost:15678/api/v1/workflows"
    )


def test_export_writes_valid_json_with_api_key_header(tmp_path):
    fake_requests = FakeRequestsModule(FakeResponse('{"data": []}'))
    service = WorkflowExportService(logger=DummyLogger(), requests_module=fake_requests, timeout=5)
    dest = tmp_path / "workflows.json"

    service.export("http://localhost:5678/api/v1/workflows", "secret", str(dest))

    assert dest.read_text(encoding="utf-8") == '{"data": []}'
    url, kwargs = fake_requests.calls[0]
    assert kwargs["headers"]["X-N8N-API-KEY"] == "secret"
    assert kwargs["timeout"] == 5


def test_export_rejects_invalid_json(tmp_path):
    service = WorkflowExportService(
        logger=DummyLogger(),
        requests_module=FakeRequestsModule(FakeResponse("<html>login</html>")),
    )
    dest = tmp_path / "workflows.json"

    with pytest.raises(BackupStepFailure, match="invalid JSON"):
        service.export("http://localhost:5678/api/v1/workflows", "secret", str(dest))

    assert not dest.exists()


def test_export_wraps_http_errors(tmp_path):
    service = WorkflowExportService(
        logger=DummyLogger(),
        requests_module=FakeRequestsModule(FakeResponse("", status_ok=False)),
    )

    with pytest.raises(BackupStepFailure, match="API export failed"):
        service.export("http://localhost:5678/api/v1/workflows", "bad", str(tmp_path / "w.json"))
