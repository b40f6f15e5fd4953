"""CommitHistoryReader — walks the default branch history back to the last release."""

from typing import Any

import structlog

from releasepilot.adapters.errors import ErrorKind, GitHubClientError, classify, status_of
from releasepilot.adapters.github_client import GitHubClient
from releasepilot.schemas.release import Commit, CommitsPage, FilesCommit, LabelsCommit

logger = structlog.get_logger(__name__)

# The REST API cannot return commits together with the paths they touched, so
# history is read through GraphQL, newest first.
COMMITS_WITH_FILES_QUERY = """
query commitsWithFiles($cursor: String, $owner: String!, $repo: String!, $baseRef: String!, $perPage: Int, $maxFilesChanged: Int, $path: String) {
  repository(owner: $owner, name: $repo) {
    ref(qualifiedName: $baseRef) {
      target {
        ... on Commit {
          history(first: $perPage, after: $cursor, path: $path) {
            edges {
              node {
                ... on Commit {
                  message
                  oid
                  associatedPullRequests(first: 1) {
                    edges {
                      node {
                        ... on PullRequest {
                          number
                          mergeCommit {
                            oid
                          }
                          files(first: $maxFilesChanged) {
                            edges {
                              node {
                                path
                              }
                            }
                            pageInfo {
                              endCursor
                              hasNextPage
                            }
                          }
                        }
                      }
                    }
                  }
                }
              }
            }
            pageInfo {
              endCursor
              hasNextPage
            }
          }
        }
      }
    }
  }
}
"""

COMMITS_WITH_LABELS_QUERY = """
query commitsWithLabels($cursor: String, $owner: String!, $repo: String!, $baseRef: String!, $perPage: Int, $maxLabels: Int, $path: String) {
  repository(owner: $owner, name: $repo) {
    ref(qualifiedName: $baseRef) {
      target {
        ... on Commit {
          history(first: $perPage, after: $cursor, path: $path) {
            edges {
              node {
                ... on Commit {
                  message
                  oid
                  associatedPullRequests(first: 1) {
                    edges {
                      node {
                        ... on PullRequest {
                          number
                          mergeCommit {
                            oid
                          }
                          labels(first: $maxLabels) {
                            edges {
                              node {
                                name
                              }
                            }
                          }
                        }
                      }
                    }
                  }
                }
              }
            }
            pageInfo {
              endCursor
              hasNextPage
            }
          }
        }
      }
    }
  }
}
"""

PULL_REQUEST_FILES_QUERY = """
query pullRequestFiles($cursor: String, $owner: String!, $repo: String!, $maxFilesChanged: Int, $num: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $num) {
      number
      files(first: $maxFilesChanged, after: $cursor) {
        edges {
          node {
            path
          }
        }
        pageInfo {
          endCursor
          hasNextPage
        }
      }
    }
  }
}
"""


class CommitHistoryReader:
    """Reads commits of the default branch, newest first, page by page.

    Pages are fetched strictly one after another. A 502 from the GraphQL endpoint
    is retried up to ``max_retries`` extra times; anything else propagates.
    """

    def __init__(
        self,
        client: GitHubClient,
        max_retries: int = 3,
        max_files_changed: int = 64,
        max_labels: int = 16,
    ) -> None:
        self._client = client
        self._max_retries = max_retries
        self._max_files_changed = max_files_changed
        self._max_labels = max_labels

    async def commits_since_sha(
        self,
        sha: str | None,
        per_page: int = 100,
        labels: bool = False,
        path: str | None = None,
    ) -> list[Commit]:
        """Return every commit newer than ``sha``, newest first, excluding ``sha`` itself.

        With ``sha`` None (or never encountered) the whole history is returned.
        ``labels`` selects commits carrying PR labels instead of changed files;
        ``path`` restricts history to commits touching that path.
        """
        fetch_page = self.commits_with_labels if labels else self.commits_with_files
        observed_prs: set[int] = set()
        commits: list[Commit] = []
        cursor: str | None = None
        while True:
            page = await fetch_page(cursor, per_page, path, observed_prs=observed_prs)
            for commit in page.commits:
                if commit.sha == sha:
                    return commits
                commits.append(commit)
            if not page.has_next_page or not page.end_cursor:
                return commits
            cursor = page.end_cursor

    async def commits_with_files(
        self,
        cursor: str | None = None,
        per_page: int = 32,
        path: str | None = None,
        observed_prs: set[int] | None = None,
    ) -> CommitsPage:
        base_branch = await self._client.get_default_branch()
        base_ref = f"refs/heads/{base_branch}"
        data = await self._query_with_retry(
            "commitsWithFiles",
            COMMITS_WITH_FILES_QUERY,
            cursor=cursor,
            owner=self._client.owner,
            repo=self._client.repo,
            baseRef=base_ref,
            perPage=per_page,
            maxFilesChanged=self._max_files_changed,
            path=path,
        )
        return await self._to_page(
            data, base_ref, observed_prs if observed_prs is not None else set(), labels=False
        )

    async def commits_with_labels(
        self,
        cursor: str | None = None,
        per_page: int = 32,
        path: str | None = None,
        observed_prs: set[int] | None = None,
    ) -> CommitsPage:
        base_branch = await self._client.get_default_branch()
        base_ref = f"refs/heads/{base_branch}"
        data = await self._query_with_retry(
            "commitsWithLabels",
            COMMITS_WITH_LABELS_QUERY,
            cursor=cursor,
            owner=self._client.owner,
            repo=self._client.repo,
            baseRef=base_ref,
            perPage=per_page,
            maxLabels=self._max_labels,
            path=path,
        )
        return await self._to_page(
            data, base_ref, observed_prs if observed_prs is not None else set(), labels=True
        )

    async def pull_request_files(
        self, number: int, cursor: str | None, max_files_changed: int = 100
    ) -> tuple[list[str], str | None, bool]:
        """Fetch one more page of files for a pull request with a truncated file list.

        Returns ``(paths, end_cursor, has_next_page)``.
        """
        data = await self._client.graphql(
            PULL_REQUEST_FILES_QUERY,
            cursor=cursor,
            maxFilesChanged=max_files_changed,
            owner=self._client.owner,
            repo=self._client.repo,
            num=number,
        )
        files = data["repository"]["pullRequest"]["files"]
        page_info = files.get("pageInfo") or {}
        return (
            [edge["node"]["path"] for edge in files.get("edges", [])],
            page_info.get("endCursor"),
            bool(page_info.get("hasNextPage")),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _query_with_retry(self, name: str, query: str, **variables: Any) -> dict[str, Any]:
        retries = 0
        while True:
            try:
                return await self._client.graphql(query, **variables)
            except Exception as exc:
                if classify(exc) is not ErrorKind.TRANSIENT_UPSTREAM or retries >= self._max_retries:
                    raise
                retries += 1
                logger.warning("commit_query_retry", query=name, attempt=retries, status=status_of(exc))

    async def _to_page(
        self, data: dict[str, Any], base_ref: str, observed_prs: set[int], labels: bool
    ) -> CommitsPage:
        ref = (data.get("repository") or {}).get("ref")
        if not ref:
            logger.warning("commit_history_ref_missing", ref=base_ref)
            raise GitHubClientError(
                f"Ref {base_ref} not found in {self._client.owner}/{self._client.repo}", status_code=404
            )
        history = ref["target"]["history"]
        commits = [await self._to_commit(edge["node"], observed_prs, labels) for edge in history.get("edges", [])]
        page_info = history.get("pageInfo") or {}
        return CommitsPage(
            commits=commits,
            end_cursor=page_info.get("endCursor"),
            has_next_page=bool(page_info.get("hasNextPage")),
        )

    async def _to_commit(self, node: dict[str, Any], observed_prs: set[int], labels: bool) -> Commit:
        sha = node["oid"]
        message = node.get("message", "")
        pr_edges = (node.get("associatedPullRequests") or {}).get("edges") or []
        pull = pr_edges[0]["node"] if pr_edges else None
        number = pull["number"] if pull else None

        # Only the merge commit of a PR carries its files or labels, and only the
        # first time the PR is seen; rebased siblings stay bare.
        owns_pull = (
            pull is not None
            and (pull.get("mergeCommit") or {}).get("oid") == sha
            and number not in observed_prs
        )
        if owns_pull:
            observed_prs.add(number)

        if labels:
            names: list[str] = []
            if owns_pull:
                names = [edge["node"]["name"] for edge in (pull.get("labels") or {}).get("edges", [])]
            return LabelsCommit(sha=sha, message=message, pull_request_number=number, labels=frozenset(names))

        files: list[str] = []
        if owns_pull:
            pr_files = pull.get("files") or {}
            files = [edge["node"]["path"] for edge in pr_files.get("edges", [])]
            page_info = pr_files.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            has_next = bool(page_info.get("hasNextPage"))
            while has_next and cursor:
                more, cursor, has_next = await self.pull_request_files(number, cursor)
                files.extend(more)
        return FilesCommit(sha=sha, message=message, pull_request_number=number, files=tuple(files))
