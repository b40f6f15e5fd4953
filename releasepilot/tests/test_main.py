from unittest.mock import AsyncMock

import structlog

from releasepilot.adapters.github_client import GitHubClient
from releasepilot.config.config import Settings
from releasepilot.main import client_from_settings, configure_logging, create_release_services
from releasepilot.tests.conftest import FakeHost


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("RELEASE_PILOT_TOKEN", "t0k3n")
    monkeypatch.setenv("RELEASE_PILOT_COMMIT_QUERY_RETRIES", "5")
    config = Settings()
    assert config.token == "t0k3n"
    assert config.commit_query_retries == 5
    assert config.api_url == "https://api.github.com"


async def test_client_from_settings() -> None:
    config = Settings(api_url="https://ghe.example/api/v3", token="t", proxy_key="pk")
    client = client_from_settings("owner", "repo", config)
    try:
        assert client.embedded is False
        assert client.api_url == "https://ghe.example/api/v3"
        assert client.token == "t"
        assert client.proxy_key == "pk"
    finally:
        await client.close()


def test_services_share_one_client() -> None:
    client = GitHubClient("owner", "repo", default_branch="main", capabilities=FakeHost().capabilities())
    creator = AsyncMock(return_value=1)

    services = create_release_services(client, creator, Settings(commit_query_retries=2))

    assert services.client is client
    assert services.tags._matcher is services.matcher
    assert services.synchronizer._fetcher is services.files
    assert services.history._max_retries == 2


def test_configure_logging_console() -> None:
    configure_logging("debug", json=False)
    try:
        structlog.get_logger("test").info("configured")
    finally:
        structlog.reset_defaults()
