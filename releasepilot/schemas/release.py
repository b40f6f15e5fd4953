"""Domain types shared by the release services."""

import abc
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class _ReleaseBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class Tag(_ReleaseBase):
    name: str
    sha: str
    # Always a normalized semantic version, e.g. "1.2.3" for tag "v1.2.3".
    version: str


class ReleasePR(_ReleaseBase):
    number: int
    sha: str | None
    version: str


class FileContents(_ReleaseBase):
    sha: str
    content: str
    parsed_content: str


class FileChange(_ReleaseBase):
    content: str
    mode: str = "100644"


ChangeSet = dict[str, FileChange]


class _CommitBase(_ReleaseBase):
    sha: str
    message: str
    pull_request_number: int | None = None


class FilesCommit(_CommitBase):
    """A commit read with the list of files its pull request touched."""

    kind: Literal["files"] = "files"
    files: tuple[str, ...] = ()


class LabelsCommit(_CommitBase):
    """A commit read with the labels of its pull request."""

    kind: Literal["labels"] = "labels"
    labels: frozenset[str] = frozenset()


# Discriminated union: a history pass reads either files or labels, never both.
Commit = Annotated[FilesCommit | LabelsCommit, Field(discriminator="kind")]


class CommitsPage(_ReleaseBase):
    commits: list[Commit]
    end_cursor: str | None = None
    has_next_page: bool = False


class ContentUpdate(abc.ABC):
    """Computes the new content of one file for a release.

    ``contents`` may be pre-loaded to spare a round trip to GitHub. When ``create``
    is False and the file does not exist, the update is skipped.
    """

    def __init__(self, path: str, create: bool = False, contents: FileContents | None = None) -> None:
        self.path = path
        self.create = create
        self.contents = contents

    @abc.abstractmethod
    def update_content(self, content: str | None) -> str | None:
        """Return the new file text, or None to leave the path out of the change set."""


class PullRequestDescriptor(BaseModel):
    """Desired state of the release pull request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    branch: str
    fork: bool = False
    version: str
    title: str
    body: str
    sha: str = ""
    updates: list[ContentUpdate] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)


class PullRequestOptions(_ReleaseBase):
    """Options handed to the branch-and-pull-request collaborator."""

    upstream_owner: str
    upstream_repo: str
    title: str
    branch: str
    description: str
    primary: str
    force: bool = True
    fork: bool = False
    message: str
