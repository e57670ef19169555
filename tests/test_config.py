import pytest

from fintrack import ApiClient, MemoryStorage
from fintrack import config as cfg
from fintrack import configure, settings

from conftest import FakeTransport, sequence_handler


def test_config_context_restores_previous_values():
    before = settings().max_retries
    with cfg(max_retries=7, base_url="https://budget.example/api"):
        s = settings()
        assert s.max_retries == 7
        assert s.base_url == "https://budget.example/api"
    assert settings().max_retries == before


def test_unknown_setting_rejected():
    with pytest.raises(AttributeError):
        configure(bogus=True)


def test_env_overlay(monkeypatch):
    monkeypatch.setenv("FINTRACK_BASE_URL", "https://env.example/api")
    monkeypatch.setenv("FINTRACK_MAX_RETRIES", "1")
    monkeypatch.setenv("FINTRACK_TIMEOUT", "2.5")
    s = settings()
    assert s.base_url == "https://env.example/api"
    assert s.max_retries == 1
    assert s.timeout == 2.5


def test_env_overlay_rejects_garbage(monkeypatch):
    monkeypatch.setenv("FINTRACK_MAX_RETRIES", "lots")
    with pytest.raises(ValueError):
        settings()


def test_client_owns_its_policy():
    transport = FakeTransport(sequence_handler({}))
    with cfg(max_retries=4, base_delay=0.5, max_delay=2.0):
        client = ApiClient(transport, storage=MemoryStorage())
    assert client.policy.max_retries == 4
    assert client.policy.base_delay == 0.5

    other = ApiClient(transport, storage=MemoryStorage())
    client.set_test_max_retries(0)
    assert client.policy.max_retries == 0
    assert other.policy.max_retries == settings().max_retries


def test_storage_path_selects_file_storage(tmp_path):
    path = tmp_path / "session.json"
    client = ApiClient(FakeTransport(sequence_handler({})), storage_path=str(path))
    client.auth.storage.set_item("auth_token", "t")
    assert path.exists()
