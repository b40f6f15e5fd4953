"""FileContentFetcher — reads one file on a branch, falling back to the git data API."""

import base64

import structlog

from releasepilot.adapters.errors import ErrorKind, FileNotFoundOnBranchError, classify
from releasepilot.adapters.github_client import GitHubClient
from releasepilot.adapters.github_models import GitHubBlob, GitHubTree
from releasepilot.schemas.release import FileContents

logger = structlog.get_logger(__name__)


def decode_content(encoded: str) -> str:
    """Decode the base64 payload GitHub returns for file contents and blobs."""
    # Bytes that are not UTF-8 become U+FFFD rather than failing the whole read.
    return base64.b64decode(encoded).decode("utf-8", errors="replace")


class FileContentFetcher:
    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def get_file_contents(self, path: str) -> FileContents:
        """Read ``path`` on the repository's default branch."""
        return await self.get_file_contents_on_branch(path, await self._client.get_default_branch())

    async def get_file_contents_on_branch(self, path: str, branch: str) -> FileContents:
        """Read ``path`` on ``branch``.

        The contents endpoint refuses some files (large ones, or tokens scoped
        without contents access) with 403. Only in that case the branch tree is
        walked and the blob fetched directly; any other failure propagates.

        Raises:
            FileNotFoundOnBranchError: when the fallback tree has no such path.
        """
        try:
            return await self.get_file_contents_with_simple_api(path, branch)
        except Exception as exc:
            if classify(exc) is not ErrorKind.PERMISSION_DENIED:
                raise
            logger.info("file_contents_fallback", path=path, branch=branch)
            return await self.get_file_contents_with_data_api(path, branch)

    async def get_file_contents_with_simple_api(self, path: str, branch: str) -> FileContents:
        resp = await self._client.request(
            "GET /repos/{owner}/{repo}/contents/{path}",
            path=path,
            ref=GitHubClient.qualify_ref(branch),
        )
        return self._to_contents(GitHubBlob.model_validate(resp.data))

    async def get_file_contents_with_data_api(self, path: str, branch: str) -> FileContents:
        tree_resp = await self._client.request("GET /repos/{owner}/{repo}/git/trees/{branch}", branch=branch)
        tree = GitHubTree.model_validate(tree_resp.data)
        entry = next((item for item in tree.tree if item.path == path), None)
        if entry is None:
            raise FileNotFoundOnBranchError(path, branch)

        blob_resp = await self._client.request("GET /repos/{owner}/{repo}/git/blobs/{sha}", sha=entry.sha)
        return self._to_contents(GitHubBlob.model_validate(blob_resp.data))

    async def find_files_by_filename(self, filename: str) -> list[str]:
        """Return the paths of every file in the repository with this name (code search)."""
        resp = await self._client.request(
            "GET /search/code",
            q=f"filename:{filename} repo:{self._client.owner}/{self._client.repo}",
        )
        return [item["path"] for item in resp.data.get("items", [])]

    @staticmethod
    def _to_contents(blob: GitHubBlob) -> FileContents:
        return FileContents(sha=blob.sha, content=blob.content, parsed_content=decode_content(blob.content))
