import base64
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock

import pytest

from releasepilot.adapters.errors import GitHubClientError
from releasepilot.adapters.github_client import GitHubClient, HostCapabilities
from releasepilot.adapters.github_models import HostResponse

OWNER = "owner"
REPO = "repo"


class FakeHost:
    """In-memory stand-in for the three host capabilities.

    ``on(route, *results)`` queues results per route; the last result is sticky.
    A queued exception is raised instead of returned.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[Any]] = {}
        self.pages: dict[str, list[list[Any]]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.graphql = AsyncMock()

    def on(self, route: str, *results: Any) -> None:
        self.routes.setdefault(route, []).extend(results)

    def on_pages(self, route: str, *pages: list[Any]) -> None:
        self.pages[route] = list(pages)

    def calls_to(self, route: str) -> list[dict[str, Any]]:
        return [params for called, params in self.calls if called == route]

    async def request(self, route: str, **params: Any) -> HostResponse:
        self.calls.append((route, params))
        queue = self.routes.get(route)
        if not queue:
            raise GitHubClientError(f"unexpected route {route}", status_code=599)
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, BaseException):
            raise result
        return HostResponse(status=200, data=result)

    async def paginate(self, route: str, **params: Any) -> AsyncIterator[HostResponse]:
        self.calls.append((route, params))
        for page in self.pages.get(route, []):
            if isinstance(page, BaseException):
                raise page
            yield HostResponse(status=200, data=page)

    def capabilities(self) -> HostCapabilities:
        return HostCapabilities(request=self.request, graphql=self.graphql, paginate=self.paginate)


def encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def make_pull(
    number: int,
    head_label: str,
    *,
    head_ref: str | None = None,
    base_label: str = f"{OWNER}:main",
    labels: tuple[str, ...] = (),
    merged_at: str | None = "2024-01-02T03:04:05Z",
    merge_commit_sha: str = "merge-sha",
    body: str | None = None,
    title: str = "chore: release",
) -> dict[str, Any]:
    return {
        "number": number,
        "title": title,
        "body": body,
        "labels": [{"name": name} for name in labels],
        "head": {"label": head_label, "ref": head_ref or head_label.split(":", 1)[-1]},
        "base": {"label": base_label, "ref": base_label.split(":", 1)[-1]},
        "merged_at": merged_at,
        "merge_commit_sha": merge_commit_sha,
    }


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def client(host: FakeHost) -> GitHubClient:
    return GitHubClient(OWNER, REPO, default_branch="main", capabilities=host.capabilities())
