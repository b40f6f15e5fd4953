"""httpx-backed implementation of the request, GraphQL and pagination capabilities."""

import json
import logging
import string
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx

from releasepilot.adapters.errors import GitHubClientError
from releasepilot.adapters.github_models import HostResponse

logger = logging.getLogger(__name__)

_QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})


class GitHubTransport:
    """Talks to the GitHub REST and GraphQL APIs over a single ``httpx.AsyncClient``.

    Routes are templates such as ``"GET /repos/{owner}/{repo}/pulls"``. Placeholders are
    filled from keyword parameters; whatever is left becomes the query string for
    GET/HEAD/DELETE and the JSON body otherwise. A route may carry its own literal
    query string (``?key=...``), which is merged with the parameters.
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        base_headers = {"Accept": "application/vnd.github+json"}
        base_headers.update(headers or {})
        self._http = http or httpx.AsyncClient(base_url=self._api_url, headers=base_headers, timeout=timeout)

    async def __aenter__(self) -> "GitHubTransport":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        # Guard against double-close when both explicit close() and context-manager are used.
        if not self._http.is_closed:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def request(self, route: str, **params: Any) -> HostResponse:
        method, url, headers, query, body = self._build(route, params)
        logger.debug("%s %s", method, url)
        resp = await self._http.request(method, url, params=query, json=body, headers=headers)
        return self._envelope(resp)

    async def graphql(self, query: str, **options: Any) -> dict[str, Any]:
        """Execute a GraphQL document and return its ``data`` member.

        ``url`` and ``headers`` are transport options; every other keyword is a
        GraphQL variable.
        """
        url = options.pop("url", None) or f"{self._api_url}/graphql"
        headers = options.pop("headers", None) or {}
        resp = await self._http.post(url, json={"query": query, "variables": options}, headers=headers)
        payload = self._envelope(resp).data
        if not isinstance(payload, dict):
            raise GitHubClientError(
                f"GitHub GraphQL returned unexpected shape (status {resp.status_code})",
                status_code=resp.status_code,
            )
        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(err.get("message", err)) for err in errors)
            raise GitHubClientError(f"GitHub GraphQL error: {messages}", status_code=resp.status_code)
        return payload.get("data") or {}

    async def paginate(self, route: str, **params: Any) -> AsyncIterator[HostResponse]:
        """Yield one envelope per page, following ``Link: rel="next"`` headers."""
        method, url, headers, query, body = self._build(route, params)
        resp = await self._http.request(method, url, params=query, json=body, headers=headers)
        while True:
            yield self._envelope(resp)
            next_url = resp.links.get("next", {}).get("url")
            if not next_url:
                return
            resp = await self._http.get(next_url, headers=headers)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build(
        route: str, params: dict[str, Any]
    ) -> tuple[str, str, dict[str, str], dict[str, Any], Any]:
        method, _, template = route.strip().partition(" ")
        method = method.upper()
        if not template:
            raise ValueError(f"Route must look like 'METHOD /path', got {route!r}")

        remaining = dict(params)
        headers = remaining.pop("headers", None) or {}
        path_template, _, literal_query = template.partition("?")

        values: dict[str, str] = {}
        for _, field, _, _ in string.Formatter().parse(path_template):
            if field is None:
                continue
            if field not in remaining:
                raise ValueError(f"Missing route parameter {field!r} for {route!r}")
            values[field] = quote(str(remaining.pop(field)), safe="/")
        url = path_template.format(**values)

        query: dict[str, Any] = dict(httpx.QueryParams(literal_query))
        body: Any = None
        if method in _QUERY_METHODS:
            query.update({k: v for k, v in remaining.items() if v is not None})
        elif remaining:
            body = remaining
        return method, url, headers, query, body

    @staticmethod
    def _envelope(resp: httpx.Response) -> HostResponse:
        if resp.is_error:
            raise GitHubClientError(
                f"GitHub API error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )
        data: Any = None
        if resp.content:
            try:
                data = resp.json()
            except json.JSONDecodeError as exc:
                raise GitHubClientError(
                    f"GitHub returned non-JSON body (status {resp.status_code}): {exc}",
                    status_code=resp.status_code,
                ) from exc
        return HostResponse(status=resp.status_code, data=data, headers=dict(resp.headers))
