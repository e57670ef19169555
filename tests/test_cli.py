import json

from typer.testing import CliRunner

from conftest import FakeTransport, SleepRecorder, sequence_handler
from fintrack import ApiClient, HTTPStatusFailure, MemoryStorage, RetryPolicy, TransportFailure
from fintrack.cli import app
from fintrack.storage import Session, save_session

runner = CliRunner()


def _patch_client(monkeypatch, handler, storage=None):
    transport = FakeTransport(handler)
    store = storage or MemoryStorage()

    def _factory():
        return ApiClient(transport, storage=store, policy=RetryPolicy(max_retries=1), sleep=SleepRecorder())

    monkeypatch.setattr("fintrack.cli._make_client", _factory)
    return transport, store


def test_get_command_json_output(monkeypatch):
    transport, _ = _patch_client(monkeypatch, sequence_handler({"budgets": [{"name": "Food"}]}))
    result = runner.invoke(app, ["get", "/budgets", "--format", "json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"budgets": [{"name": "Food"}]}
    assert transport.calls[0][:2] == ("GET", "/budgets")


def test_post_command_sends_body(monkeypatch):
    transport, _ = _patch_client(monkeypatch, sequence_handler({"id": "b-1"}))
    result = runner.invoke(app, ["post", "/budgets", "--data", '{"name": "Rent"}'])
    assert result.exit_code == 0
    assert "b-1" in result.stdout
    assert transport.calls[0][3] == {"name": "Rent"}


def test_post_command_rejects_bad_json(monkeypatch):
    _patch_client(monkeypatch, sequence_handler({}))
    result = runner.invoke(app, ["post", "/budgets", "--data", "{nope"])
    assert result.exit_code != 0


def test_api_error_exits_with_code_1(monkeypatch):
    body = json.dumps({"message": "Budget missing"})
    _patch_client(monkeypatch, sequence_handler(HTTPStatusFailure(404, "Not Found", body)))
    result = runner.invoke(app, ["delete", "/budgets/9"])
    assert result.exit_code == 1
    assert "Budget missing" in result.stdout
    assert "not_found" in result.stdout


def test_transport_failure_exits_with_code_1(monkeypatch):
    _patch_client(monkeypatch, sequence_handler(TransportFailure("certificate verify failed")))
    result = runner.invoke(app, ["get", "/budgets"])
    assert result.exit_code == 1
    assert "certificate verify failed" in result.stdout


def test_health_command(monkeypatch):
    _patch_client(monkeypatch, sequence_handler("healthy"))
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 0
    assert "healthy" in result.stdout


def test_login_command_stores_session(monkeypatch):
    payload = {"token": "tok", "user_id": "u-42", "expires_at": None, "onboarding_completed": True}
    _, store = _patch_client(monkeypatch, sequence_handler(payload))
    result = runner.invoke(app, ["login", "me@example.com", "--password", "pw"])
    assert result.exit_code == 0
    assert "u-42" in result.stdout
    assert store.get_item("auth_token") == "tok"


def test_whoami(monkeypatch, tmp_path):
    path = tmp_path / "session.json"
    monkeypatch.setenv("FINTRACK_STORAGE_PATH", str(path))

    result = runner.invoke(app, ["whoami"])
    assert result.exit_code == 1
    assert "Not signed in" in result.stdout

    from fintrack import FileStorage

    save_session(FileStorage(path), Session(token="secret-token", user_id="u-7"))
    result = runner.invoke(app, ["whoami"])
    assert result.exit_code == 0
    assert "u-7" in result.stdout
    assert "secret-token" not in result.stdout


def test_config_command_prints_exports():
    result = runner.invoke(app, ["config", "--base-url", "https://x.example/api"])
    assert result.exit_code == 0
    assert "FINTRACK_BASE_URL=https://x.example/api" in result.stdout
