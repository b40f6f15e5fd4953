"""ReleasePRSynchronizer — converges the open release PR to the desired state."""

from collections.abc import Awaitable, Callable

import structlog

from releasepilot.adapters.errors import ErrorKind, classify
from releasepilot.adapters.github_client import GitHubClient
from releasepilot.adapters.github_models import GitHubPullRequest
from releasepilot.schemas.release import (
    ChangeSet,
    ContentUpdate,
    FileChange,
    FileContents,
    PullRequestDescriptor,
    PullRequestOptions,
)
from releasepilot.services.file_contents import FileContentFetcher
from releasepilot.services.release_pr_matcher import ReleasePRMatcher

logger = structlog.get_logger(__name__)

# Pushes the change set as one commit on a branch and opens (or reuses) the PR.
# Receives the change set, the options and a log level; returns the PR number.
CreatePullRequestFn = Callable[[ChangeSet, PullRequestOptions, str], Awaitable[int]]


class ReleasePRSynchronizer:
    """Creates, updates or leaves alone the single long-lived release pull request.

    Repeated calls with the same descriptor are idempotent: once the open PR's
    body matches, nothing is pushed or patched and 0 is returned.
    """

    def __init__(
        self,
        client: GitHubClient,
        matcher: ReleasePRMatcher,
        fetcher: FileContentFetcher,
        create_pull_request: CreatePullRequestFn,
        log_level: str = "error",
    ) -> None:
        self._client = client
        self._matcher = matcher
        self._fetcher = fetcher
        self._create_pull_request = create_pull_request
        self._log_level = log_level

    async def synchronize(self, options: PullRequestDescriptor) -> int:
        """Converge the release PR for ``options.branch``.

        Returns the PR number, or 0 when the open release PR already carries the
        requested body. Failures while pushing the branch or patching the PR
        propagate.
        """
        default_branch = await self._client.get_default_branch()

        open_release_pr = await self._find_open_release_pr(options.branch, options.labels)
        if open_release_pr is not None and open_release_pr.body == options.body:
            logger.info("release_pr_unchanged", number=open_release_pr.number, repo=self._repo_slug())
            return 0

        changes, missing = await self.get_change_set(options.updates, default_branch)
        if missing:
            logger.info("release_pr_files_skipped", paths=missing)

        pr_number = await self._create_pull_request(
            changes,
            PullRequestOptions(
                upstream_owner=self._client.owner,
                upstream_repo=self._client.repo,
                title=options.title,
                branch=options.branch,
                description=options.body,
                primary=default_branch,
                force=True,
                fork=options.fork,
                message=options.title,
            ),
            self._log_level,
        )

        if open_release_pr is None:
            logger.info("release_pr_opened", number=pr_number, title=options.title)
            return pr_number

        # The branch push only refreshed the existing PR; carry the new title and body over.
        logger.info("release_pr_updated", number=open_release_pr.number, title=options.title)
        await self._client.request(
            "PATCH /repos/{owner}/{repo}/pulls/{pull_number}",
            pull_number=open_release_pr.number,
            title=options.title,
            body=options.body,
            state="open",
        )
        return open_release_pr.number

    async def get_change_set(self, updates: list[ContentUpdate], default_branch: str) -> tuple[ChangeSet, list[str]]:
        """Apply every update to the current file text on ``default_branch``.

        Returns the change set and the paths skipped because the file does not
        exist and the update may not create it.
        """
        changes: ChangeSet = {}
        missing: list[str] = []
        for update in updates:
            contents: FileContents | None = update.contents
            if contents is None:
                try:
                    contents = await self._fetcher.get_file_contents_on_branch(update.path, default_branch)
                except Exception as exc:
                    if classify(exc) is not ErrorKind.NOT_FOUND:
                        raise
                    if not update.create:
                        logger.warning("release_file_missing", path=update.path, branch=default_branch)
                        missing.append(update.path)
                        continue

            updated = update.update_content(contents.parsed_content if contents else None)
            if updated:
                changes[update.path] = FileChange(content=updated, mode="100644")
        return changes, missing

    async def _find_open_release_pr(self, branch: str, labels: list[str]) -> GitHubPullRequest | None:
        ref_name = f"refs/heads/{branch}"
        for pull in await self._matcher.find_open_release_prs(labels):
            if pull.head is not None and pull.head.ref and pull.head.ref in ref_name:
                return pull
        return None

    def _repo_slug(self) -> str:
        return f"{self._client.owner}/{self._client.repo}"
