import base64

import pytest

from releasepilot.adapters.errors import FileNotFoundOnBranchError, GitHubClientError
from releasepilot.adapters.github_client import GitHubClient
from releasepilot.schemas.release import FileContents
from releasepilot.services.file_contents import FileContentFetcher, decode_content
from releasepilot.tests.conftest import FakeHost, encode

CONTENTS = "GET /repos/{owner}/{repo}/contents/{path}"
TREES = "GET /repos/{owner}/{repo}/git/trees/{branch}"
BLOBS = "GET /repos/{owner}/{repo}/git/blobs/{sha}"


@pytest.fixture
def fetcher(client: GitHubClient) -> FileContentFetcher:
    return FileContentFetcher(client)


def test_decode_content_handles_line_breaks() -> None:
    encoded = encode('{"version": "1.2.3"}\n')
    wrapped = "\n".join(encoded[i : i + 8] for i in range(0, len(encoded), 8))
    assert decode_content(wrapped) == '{"version": "1.2.3"}\n'


def test_decode_content_replaces_invalid_utf8() -> None:
    assert decode_content(base64.b64encode(b"caf\xe9\n").decode("ascii")) == "caf\ufffd\n"


class TestSimpleApi:
    async def test_reads_file_on_qualified_ref(self, host: FakeHost, fetcher: FileContentFetcher) -> None:
        host.on(CONTENTS, {"sha": "blob-1", "content": encode("1.2.3\n")})

        result = await fetcher.get_file_contents_on_branch("version.txt", "main")

        assert result == FileContents(sha="blob-1", content=encode("1.2.3\n"), parsed_content="1.2.3\n")
        params = host.calls_to(CONTENTS)[0]
        assert params["path"] == "version.txt"
        assert params["ref"] == "refs/heads/main"
        assert host.calls_to(TREES) == []

    async def test_qualified_branch_is_not_rewritten(self, host: FakeHost, fetcher: FileContentFetcher) -> None:
        host.on(CONTENTS, {"sha": "blob-1", "content": encode("x")})
        await fetcher.get_file_contents_on_branch("version.txt", "heads/release-v1.2.3")
        assert host.calls_to(CONTENTS)[0]["ref"] == "heads/release-v1.2.3"

    async def test_latin1_file_is_read_with_replacement(self, host: FakeHost, fetcher: FileContentFetcher) -> None:
        payload = base64.b64encode("café\n".encode("latin-1")).decode("ascii")
        host.on(CONTENTS, {"sha": "blob-1", "content": payload})

        result = await fetcher.get_file_contents_on_branch("NOTES.txt", "main")

        assert result.parsed_content == "caf\ufffd\n"
        assert result.content == payload

    async def test_default_branch_variant(self, host: FakeHost, fetcher: FileContentFetcher) -> None:
        host.on(CONTENTS, {"sha": "blob-1", "content": encode("x")})
        result = await fetcher.get_file_contents("setup.py")
        assert result.parsed_content == "x"
        assert host.calls_to(CONTENTS)[0]["ref"] == "refs/heads/main"


class TestFallback:
    async def test_permission_denied_falls_back_to_tree_and_blob(
        self, host: FakeHost, fetcher: FileContentFetcher
    ) -> None:
        host.on(CONTENTS, GitHubClientError("too large", status_code=403))
        host.on(
            TREES,
            {
                "sha": "tree-1",
                "tree": [
                    {"path": "README.md", "sha": "blob-readme", "type": "blob"},
                    {"path": "package.json", "sha": "blob-pkg", "type": "blob"},
                ],
            },
        )
        host.on(BLOBS, {"sha": "blob-pkg", "content": encode('{"version": "1.0.0"}')})

        result = await fetcher.get_file_contents_on_branch("package.json", "main")

        assert result.sha == "blob-pkg"
        assert result.parsed_content == '{"version": "1.0.0"}'
        assert host.calls_to(TREES)[0]["branch"] == "main"
        assert host.calls_to(BLOBS)[0]["sha"] == "blob-pkg"

    async def test_missing_tree_entry_raises_not_found(self, host: FakeHost, fetcher: FileContentFetcher) -> None:
        host.on(CONTENTS, GitHubClientError("forbidden", status_code=403))
        host.on(TREES, {"sha": "tree-1", "tree": [{"path": "README.md", "sha": "blob-readme"}]})

        with pytest.raises(FileNotFoundOnBranchError) as exc_info:
            await fetcher.get_file_contents_on_branch("package.json", "main")

        assert exc_info.value.status_code == 404
        assert host.calls_to(BLOBS) == []

    @pytest.mark.parametrize("status", [404, 500, 502])
    async def test_other_errors_propagate_without_fallback(
        self, host: FakeHost, fetcher: FileContentFetcher, status: int
    ) -> None:
        host.on(CONTENTS, GitHubClientError("nope", status_code=status))

        with pytest.raises(GitHubClientError) as exc_info:
            await fetcher.get_file_contents_on_branch("package.json", "main")

        assert exc_info.value.status_code == status
        assert host.calls_to(TREES) == []


async def test_find_files_by_filename(host: FakeHost, fetcher: FileContentFetcher) -> None:
    host.on("GET /search/code", {"items": [{"path": "a/package.json"}, {"path": "package.json"}]})

    paths = await fetcher.find_files_by_filename("package.json")

    assert paths == ["a/package.json", "package.json"]
    assert host.calls_to("GET /search/code")[0] == {"q": "filename:package.json repo:owner/repo"}
