"""Composition root: logging setup and wiring of the release services."""

import logging
from dataclasses import dataclass

import structlog

from releasepilot.adapters.github_client import GitHubClient
from releasepilot.config.config import Settings, settings
from releasepilot.services.commit_history import CommitHistoryReader
from releasepilot.services.file_contents import FileContentFetcher
from releasepilot.services.release_admin import ReleaseAdmin
from releasepilot.services.release_pr_matcher import ReleasePRMatcher
from releasepilot.services.release_pr_sync import CreatePullRequestFn, ReleasePRSynchronizer
from releasepilot.services.tag_resolver import TagResolver


def configure_logging(level: str = settings.log_level, json: bool = settings.log_json) -> None:
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
    )
    logging.basicConfig(level=level.upper())


@dataclass(frozen=True, slots=True)
class ReleaseServices:
    client: GitHubClient
    files: FileContentFetcher
    history: CommitHistoryReader
    matcher: ReleasePRMatcher
    tags: TagResolver
    synchronizer: ReleasePRSynchronizer
    admin: ReleaseAdmin


def client_from_settings(owner: str, repo: str, config: Settings = settings) -> GitHubClient:
    """Build a client that talks to GitHub directly with the configured token."""
    return GitHubClient(
        owner,
        repo,
        api_url=config.api_url,
        token=config.token,
        proxy_key=config.proxy_key,
        user_agent=config.user_agent,
        timeout=config.request_timeout_seconds,
    )


def create_release_services(
    client: GitHubClient,
    create_pull_request: CreatePullRequestFn,
    config: Settings = settings,
) -> ReleaseServices:
    files = FileContentFetcher(client)
    matcher = ReleasePRMatcher(client)
    return ReleaseServices(
        client=client,
        files=files,
        history=CommitHistoryReader(
            client,
            max_retries=config.commit_query_retries,
            max_files_changed=config.max_files_changed,
            max_labels=config.max_labels,
        ),
        matcher=matcher,
        tags=TagResolver(client, matcher),
        synchronizer=ReleasePRSynchronizer(client, matcher, files, create_pull_request),
        admin=ReleaseAdmin(client),
    )
