"""TagResolver — determines the latest released version of a (monorepo) package."""

import structlog

from releasepilot.adapters.github_client import GitHubClient
from releasepilot.adapters.github_models import GitHubTag
from releasepilot.schemas.release import Tag
from releasepilot.services.release_pr_matcher import ReleasePRMatcher
from releasepilot.services.versioning import is_prerelease, latest_version, normalize_version

logger = structlog.get_logger(__name__)


class TagResolver:
    def __init__(self, client: GitHubClient, matcher: ReleasePRMatcher) -> None:
        self._client = client
        self._matcher = matcher

    async def latest_tag(
        self,
        prefix: str | None = None,
        pre_release: bool = False,
        branch_prefix: str | None = None,
    ) -> Tag | None:
        """Return the latest release of the package, or None when nothing was released yet.

        The last merged release PR is authoritative. ``branch_prefix`` lets the
        release branch name use a different prefix than the tags do (Go modules tag
        ``library/v1.2.3`` while the branch reads ``release-library-v1.2.3``).
        Without a matching PR, all tags are scanned.
        """
        pull = await self._matcher.find_merged_release_pr(
            [], 100, branch_prefix if branch_prefix is not None else prefix, pre_release
        )
        if pull is None:
            return await self.latest_tag_fallback(prefix, pre_release)
        logger.info("latest_release_from_pr", number=pull.number, version=pull.version)
        return Tag(name=f"v{pull.version}", sha=pull.sha or "", version=pull.version)

    async def latest_tag_fallback(self, prefix: str | None = None, pre_release: bool = False) -> Tag | None:
        """Pick the highest semver tag, e.g. before the very first release PR was merged."""
        tags = await self.all_tags(prefix)
        versions = [version for version in tags if pre_release or not is_prerelease(version)]
        best = latest_version(versions)
        if best is None:
            logger.info("no_release_tags", prefix=prefix)
            return None
        logger.info("latest_release_from_tags", name=tags[best].name, version=best)
        return tags[best]

    async def all_tags(self, prefix: str | None = None) -> dict[str, Tag]:
        """Map normalized version to tag for every semver tag, optionally restricted to ``prefix``.

        Tags resolving to the same version overwrite each other in page order.
        """
        tags: dict[str, Tag] = {}
        async for page in self._client.paginate("GET /repos/{owner}/{repo}/tags", per_page=100):
            for item in page.data or []:
                tag = GitHubTag.model_validate(item)
                if prefix and not tag.name.startswith(prefix):
                    continue
                version = normalize_version(tag.name[len(prefix) :] if prefix else tag.name)
                if version is None:
                    continue
                tags[version] = Tag(name=tag.name, sha=tag.commit.sha, version=version)
        return tags

    async def get_tag_sha(self, name: str) -> str:
        resp = await self._client.request("GET /repos/{owner}/{repo}/git/refs/tags/{name}", name=name)
        return resp.data["object"]["sha"]
