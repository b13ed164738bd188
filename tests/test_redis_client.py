import pytest

from peergos.core.config import settings
from peergos.core.exceptions import ConfigurationError
from peergos.db import redis_client


@pytest.fixture(autouse=True)
def _no_shared_client():
    redis_client.close_redis_client()
    yield
    redis_client.close_redis_client()


def test_missing_url_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "")
    with pytest.raises(ConfigurationError) as exc:
        redis_client.get_redis_client()
    assert exc.value.code == "SYS900"


def test_unreachable_server_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "redis://127.0.0.1:1/0")
    monkeypatch.setattr(settings, "REDIS_SOCKET_TIMEOUT_SECONDS", 0.5)
    with pytest.raises(ConfigurationError):
        redis_client.get_redis_client()
    assert redis_client._client is None


def test_close_without_client_is_a_noop():
    redis_client.close_redis_client()
    assert redis_client._client is None
