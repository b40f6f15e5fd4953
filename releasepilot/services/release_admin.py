"""Label, release and issue operations around a release PR."""

import structlog

from releasepilot.adapters.errors import AuthError, ErrorKind, classify
from releasepilot.adapters.github_client import GitHubClient
from releasepilot.adapters.github_models import GitHubIssue, GitHubRelease

logger = structlog.get_logger(__name__)


class ReleaseAdmin:
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def add_labels(self, labels: list[str], number: int) -> None:
        logger.info("labels_added", labels=labels, number=number)
        await self._client.request(
            "POST /repos/{owner}/{repo}/issues/{issue_number}/labels",
            issue_number=number,
            labels=labels,
        )

    async def remove_labels(self, labels: list[str], number: int) -> None:
        for label in labels:
            logger.info("label_removed", label=label, number=number)
            await self._client.request(
                "DELETE /repos/{owner}/{repo}/issues/{issue_number}/labels/{name}",
                issue_number=number,
                name=label,
            )

    async def close_pr(self, number: int) -> None:
        await self._client.request(
            "PATCH /repos/{owner}/{repo}/pulls/{pull_number}",
            pull_number=number,
            state="closed",
        )

    async def create_release(self, package_name: str, tag_name: str, sha: str, release_notes: str) -> GitHubRelease:
        logger.info("release_created", tag=tag_name, sha=sha)
        resp = await self._client.request(
            "POST /repos/{owner}/{repo}/releases",
            tag_name=tag_name,
            target_commitish=sha,
            body=release_notes,
            name=f"{package_name} {tag_name}",
        )
        return GitHubRelease.model_validate(resp.data)

    async def find_existing_release_issue(self, title: str, labels: list[str]) -> GitHubIssue | None:
        """Return the first open issue carrying ``labels`` whose title contains ``title``.

        Raises:
            AuthError: when listing answers 404, which in practice means the token
                cannot see the repository.
        """
        try:
            async for page in self._client.paginate(
                "GET /repos/{owner}/{repo}/issues", labels=",".join(labels), per_page=100
            ):
                for item in page.data or []:
                    issue = GitHubIssue.model_validate(item)
                    if title in issue.title and issue.state == "open":
                        return issue
        except Exception as exc:
            if classify(exc) is ErrorKind.NOT_FOUND:
                raise AuthError() from exc
            raise
        return None
