"""HostClient: repository coordinates plus the injected GitHub I/O capabilities."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from releasepilot.adapters.github_models import HostResponse
from releasepilot.adapters.github_transport import GitHubTransport

logger = logging.getLogger(__name__)

RequestFn = Callable[..., Awaitable[HostResponse]]
GraphQLFn = Callable[..., Awaitable[dict[str, Any]]]
PaginateFn = Callable[..., AsyncIterator[HostResponse]]


@dataclass(frozen=True, slots=True)
class HostCapabilities:
    """The three I/O capabilities every release service goes through.

    Applications that already hold authenticated GitHub clients (for example a
    GitHub App installation) inject their own; requests are then passed through
    without any auth or proxy decoration.
    """

    request: RequestFn
    graphql: GraphQLFn
    paginate: PaginateFn


class GitHubClient:
    """Coordinates of one repository and the capabilities used to reach it.

    ``default_branch`` is resolved at most once per instance and never revalidated.
    ``embedded`` is fixed at construction: True when capabilities were injected.
    """

    _DEFAULT_API_URL = "https://api.github.com"

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        api_url: str | None = None,
        default_branch: str | None = None,
        token: str | None = None,
        proxy_key: str | None = None,
        capabilities: HostCapabilities | None = None,
        user_agent: str = "release-pilot",
        timeout: float = 30.0,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.api_url = (api_url or self._DEFAULT_API_URL).rstrip("/")
        self.default_branch = default_branch
        self.token = token
        self.proxy_key = proxy_key
        self._transport: GitHubTransport | None = None

        if capabilities is None:
            self.embedded = False
            self._transport = GitHubTransport(self.api_url, headers={"User-Agent": user_agent}, timeout=timeout)
            capabilities = HostCapabilities(
                request=self._transport.request,
                graphql=self._transport.graphql,
                paginate=self._transport.paginate,
            )
        else:
            self.embedded = True
        self._capabilities = capabilities

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        # Injected capabilities belong to the caller.
        if self._transport is not None:
            await self._transport.close()

    # ------------------------------------------------------------------
    # Decorated capabilities
    # ------------------------------------------------------------------

    async def request(self, route: str, **params: Any) -> HostResponse:
        self._fill_coordinates(route, params)
        return await self._capabilities.request(self._with_proxy_key(route), **self._decorate(params))

    async def graphql(self, query: str, **variables: Any) -> dict[str, Any]:
        options = dict(variables)
        if not self.embedded:
            key = f"?key={quote(self.proxy_key)}" if self.proxy_key else ""
            options["url"] = f"{self.api_url}/graphql{key}"
            options["headers"] = {
                **self._auth_headers(),
                "content-type": "application/vnd.github.v3+json",
            }
        return await self._capabilities.graphql(query, **options)

    async def paginate(self, route: str, **params: Any) -> AsyncIterator[HostResponse]:
        self._fill_coordinates(route, params)
        async for page in self._capabilities.paginate(self._with_proxy_key(route), **self._decorate(params)):
            yield page

    # ------------------------------------------------------------------
    # Repository coordinates
    # ------------------------------------------------------------------

    async def get_default_branch(self) -> str:
        if self.default_branch:
            return self.default_branch
        resp = await self.request("GET /repos/{owner}/{repo}")
        self.default_branch = resp.data["default_branch"]
        logger.debug("Resolved default branch of %s/%s: %s", self.owner, self.repo, self.default_branch)
        return self.default_branch

    async def get_base_label(self) -> str:
        """The base label scopes pull requests to the tracked branch: ``owner:branch``."""
        return f"{self.owner}:{await self.get_default_branch()}"

    @staticmethod
    def qualify_ref(ref_name: str) -> str:
        """Turn a bare branch name into a fully qualified ref, e.g. ``main`` -> ``refs/heads/main``.

        Names that already contain a slash, such as ``heads/main``, are kept; GitHub
        accepts both forms.
        """
        if "/" not in ref_name:
            return f"refs/heads/{ref_name}"
        return ref_name

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        # Proxies expect the bare token, GitHub expects the "token " scheme.
        return {"Authorization": self.token if self.proxy_key else f"token {self.token}"}

    def _fill_coordinates(self, route: str, params: dict[str, Any]) -> None:
        if "{owner}" in route:
            params.setdefault("owner", self.owner)
        if "{repo}" in route:
            params.setdefault("repo", self.repo)

    def _decorate(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.embedded:
            return params
        headers = {**self._auth_headers(), **(params.get("headers") or {})}
        if headers:
            params["headers"] = headers
        return params

    def _with_proxy_key(self, route: str) -> str:
        if not self.proxy_key:
            return route
        separator = "&" if "?" in route else "?"
        return f"{route}{separator}key={quote(self.proxy_key)}"
