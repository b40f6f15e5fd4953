"""Pydantic models for the GitHub REST and GraphQL payloads the release services read."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Base(BaseModel):
    """Shared config: silently ignore unknown fields from the GitHub API."""

    model_config = ConfigDict(extra="ignore")


class HostResponse(_Base):
    """Envelope returned by the templated request capability."""

    status: int
    data: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


class GitHubLabel(_Base):
    name: str


class GitHubRef(_Base):
    # `label` looks like "owner:branch"; forks and deleted heads may omit it.
    label: str | None = None
    ref: str = ""
    sha: str | None = None


class GitHubPullRequest(_Base):
    number: int
    title: str = ""
    body: str | None = None
    state: str = "open"
    labels: list[GitHubLabel] = Field(default_factory=list)
    head: GitHubRef | None = None
    base: GitHubRef | None = None
    merged_at: str | None = None
    merge_commit_sha: str | None = None

    @property
    def label_names(self) -> list[str]:
        return [label.name for label in self.labels]


class GitHubIssue(_Base):
    number: int
    title: str
    body: str | None = None
    state: str = "open"
    labels: list[GitHubLabel] = Field(default_factory=list)


class GitHubTagCommit(_Base):
    sha: str


class GitHubTag(_Base):
    name: str
    commit: GitHubTagCommit


class GitHubTreeEntry(_Base):
    path: str
    sha: str
    type: str = "blob"
    mode: str | None = None


class GitHubTree(_Base):
    sha: str | None = None
    tree: list[GitHubTreeEntry] = Field(default_factory=list)


class GitHubBlob(_Base):
    """Shape shared by the contents endpoint and the git blobs endpoint."""

    sha: str
    content: str = ""
    encoding: str = "base64"


class GitHubRelease(_Base):
    id: int
    tag_name: str
    name: str | None = None
    body: str | None = None
    html_url: str | None = None
    target_commitish: str | None = None
