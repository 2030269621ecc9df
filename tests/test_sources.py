import base64

import httpx
import pytest

from core.cache import ArtifactCache
from fetch.content_source import InMemoryContentSource
from fetch.github_source import GitHubContentSource, parse_repo_reference
from fetch.local_source import LocalContentSource
from models.artifact import TreeEntry
from models.enums import EntryType


# --- in-memory ------------------------------------------------------------

@pytest.mark.asyncio
async def test_in_memory_source_lists_present_artifacts():
    source = InMemoryContentSource({"b.py": "print(1)", "a.md": "# A", "gone.txt": None})
    tree = await source.list_tree()
    assert [e.path for e in tree] == ["a.md", "b.py"]
    assert tree[0].size == 3
    assert await source.get_artifact("gone.txt") is None
    assert await source.get_artifact("nope") is None


# --- local checkout -------------------------------------------------------

@pytest.mark.asyncio
async def test_local_source(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("import os\n")
    (tmp_path / "README.md").write_text("# Local\n")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\0\0\0")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("module.exports = 1;\n")

    source = LocalContentSource(str(tmp_path))
    tree = await source.list_tree()
    paths = [e.path for e in tree]

    assert "src" in paths
    assert "src/app.py" in paths
    assert not any(p.startswith("node_modules") for p in paths)
    assert [e for e in tree if e.path == "src"][0].type == EntryType.DIR
    assert [e for e in tree if e.path == "README.md"][0].size == 8

    assert await source.get_artifact("src/app.py") == "import os\n"
    assert await source.get_artifact("logo.png") is None
    assert await source.get_artifact("missing.txt") is None
    assert await source.get_artifact("../outside.txt") is None


def test_local_source_requires_a_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        LocalContentSource(str(tmp_path / "nope"))


# --- GitHub ---------------------------------------------------------------

def _contents(text):
    return {"type": "file", "encoding": "base64", "content": base64.b64encode(text.encode()).decode()}


def github_handler(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path
        if path == "/repos/octo/demo":
            return httpx.Response(200, json={"default_branch": "trunk"})
        if path == "/repos/octo/demo/git/trees/trunk":
            assert request.url.params["recursive"] == "1"
            return httpx.Response(
                200,
                json={
                    "tree": [
                        {"path": "src", "type": "tree"},
                        {"path": "src/index.js", "type": "blob", "size": 42},
                        {"path": "vendor-sub", "type": "commit"},
                    ],
                    "truncated": False,
                },
            )
        if path == "/repos/octo/demo/contents/README.md":
            assert request.url.params["ref"] == "trunk"
            return httpx.Response(200, json=_contents("# Demo\n"))
        if path == "/repos/octo/demo/contents/src":
            return httpx.Response(200, json=[{"name": "index.js"}])
        if path == "/repos/octo/demo/contents/broken.txt":
            return httpx.Response(500, json={"message": "boom"})
        return httpx.Response(404, json={"message": "Not Found"})

    return handler


@pytest.mark.asyncio
async def test_github_source_reads_tree_and_contents():
    calls = []
    source = GitHubContentSource(
        "octo", "demo", token="ghp_test", cache=ArtifactCache(), transport=httpx.MockTransport(github_handler(calls))
    )
    async with source:
        tree = await source.list_tree()
        assert tree == [
            TreeEntry(path="src", type=EntryType.DIR),
            TreeEntry(path="src/index.js", type=EntryType.FILE, size=42),
        ]
        assert await source.get_artifact("README.md") == "# Demo\n"
        assert await source.get_artifact("src") is None
        assert await source.get_artifact("LICENSE") is None

        # Cached answers, including the 404, are not refetched
        count = len(calls)
        assert await source.get_artifact("README.md") == "# Demo\n"
        assert await source.get_artifact("LICENSE") is None
        assert len(calls) == count

    assert source.ref == "trunk"
    assert calls[0].headers["Authorization"] == "Bearer ghp_test"


@pytest.mark.asyncio
async def test_github_source_raises_on_server_errors():
    source = GitHubContentSource(
        "octo", "demo", ref="trunk", cache=ArtifactCache(), transport=httpx.MockTransport(github_handler([]))
    )
    async with source:
        with pytest.raises(httpx.HTTPStatusError):
            await source.get_artifact("broken.txt")


@pytest.mark.asyncio
async def test_github_source_unknown_repository():
    source = GitHubContentSource(
        "octo", "missing", cache=ArtifactCache(), transport=httpx.MockTransport(github_handler([]))
    )
    async with source:
        with pytest.raises(FileNotFoundError):
            await source.list_tree()


def test_parse_repo_reference():
    assert parse_repo_reference("octo/demo") == ("octo", "demo", None)
    assert parse_repo_reference("https://github.com/octo/demo.git") == ("octo", "demo", None)
    assert parse_repo_reference("https://github.com/octo/demo/tree/release/2.x") == ("octo", "demo", "release/2.x")
    with pytest.raises(ValueError):
        parse_repo_reference("not a repository")
    with pytest.raises(ValueError):
        parse_repo_reference("octo/demo/extra")
