"""ReleasePRMatcher — finds release pull requests against the tracked branch."""

import structlog

from releasepilot.adapters.github_client import GitHubClient
from releasepilot.adapters.github_models import GitHubPullRequest
from releasepilot.schemas.release import ReleasePR
from releasepilot.services.versioning import is_prerelease, normalize_version, parse_release_branch, prefix_matches

logger = structlog.get_logger(__name__)


def has_all_labels(required: list[str], observed: list[str]) -> bool:
    """True when ``observed`` is a superset of ``required``; an empty requirement always matches."""
    return set(required).issubset(observed)


class ReleasePRMatcher:
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def find_merged_release_pr(
        self,
        labels: list[str],
        per_page: int = 100,
        prefix: str | None = None,
        pre_release: bool = True,
    ) -> ReleasePR | None:
        """Return the most recently merged release PR for ``prefix``, or None.

        Only the first page of closed PRs (newest merge first) is scanned. A PR
        qualifies when it carries every label in ``labels``, targets the tracked
        branch, was merged, and its head branch reads
        ``release-[<prefix>-]v<semver>`` with exactly the requested prefix.
        Pre-releases are skipped unless ``pre_release`` is set.
        """
        base_label = await self._client.get_base_label()
        resp = await self._client.request(
            "GET /repos/{owner}/{repo}/pulls",
            state="closed",
            per_page=per_page,
            sort="merged_at",
            direction="desc",
        )
        for pull in (GitHubPullRequest.model_validate(item) for item in resp.data or []):
            if not has_all_labels(labels, pull.label_names):
                continue
            if pull.head is None or not pull.head.label:
                continue
            if pull.base is None or pull.base.label != base_label:
                continue
            branch = parse_release_branch(pull.head.label)
            if branch is None or not pull.merged_at:
                continue
            if not prefix_matches(prefix, branch.prefix):
                continue
            if not pre_release and is_prerelease(branch.version):
                continue
            version = normalize_version(branch.version)
            if version is None:
                continue
            logger.debug("merged_release_pr_found", number=pull.number, version=version, prefix=prefix)
            return ReleasePR(number=pull.number, sha=pull.merge_commit_sha, version=version)
        return None

    async def find_open_release_prs(self, labels: list[str], per_page: int = 100) -> list[GitHubPullRequest]:
        """Return every open PR against the tracked branch carrying all of ``labels``."""
        base_label = await self._client.get_base_label()
        resp = await self._client.request("GET /repos/{owner}/{repo}/pulls", state="open", per_page=per_page)
        open_release_prs: list[GitHubPullRequest] = []
        for pull in (GitHubPullRequest.model_validate(item) for item in resp.data or []):
            if pull.base is None or pull.base.label != base_label:
                continue
            if has_all_labels(labels, pull.label_names):
                open_release_prs.append(pull)
        return open_release_prs
