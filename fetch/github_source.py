"""GitHub REST content source (contents API for files, git trees API for the listing)."""
import base64
import binascii
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import quote

import httpx

from core.cache import MISSING, ArtifactCache, get_cache
from fetch.http_client import build_client, fetch_url
from models.artifact import TreeEntry
from models.enums import EntryType

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"

_REPO_REFERENCE = re.compile(
    r"^(?:https?://(?:www\.)?github\.com/)?(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+?)(?:\.git)?/?(?:/tree/(?P<ref>[^?#]+))?$"
)


def parse_repo_reference(text: str) -> Tuple[str, str, Optional[str]]:
    """Split ``owner/repo`` or a github.com URL into (owner, repo, ref).

    Raises:
        ValueError: the text is not a recognizable repository reference
    """
    match = _REPO_REFERENCE.match(text.strip())
    if not match:
        raise ValueError(f"Not a GitHub repository reference: {text!r}")
    return match.group("owner"), match.group("repo"), match.group("ref")


class GitHubContentSource:
    """Reads one repository at one ref through the GitHub REST API.

    Example:
        source = GitHubContentSource("octocat", "Hello-World", token=os.environ.get("GITHUB_TOKEN"))
        tree = await source.list_tree()
        readme = await source.get_artifact("README.md")
        await source.aclose()
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        ref: Optional[str] = None,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = None,
        cache: Optional[ArtifactCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.ref = ref
        self.api_url = api_url.rstrip("/")
        self.cache = cache if cache is not None else get_cache()
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = build_client(timeout=timeout, headers=headers, transport=transport)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def __aenter__(self) -> "GitHubContentSource":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params=None) -> Optional[httpx.Response]:
        response = await fetch_url(self._client, f"{self.api_url}{path}", params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response

    async def resolve_ref(self) -> str:
        """The configured ref, or the repository's default branch."""
        if self.ref:
            return self.ref
        response = await self._get(f"/repos/{self.slug}")
        if response is None:
            raise FileNotFoundError(f"Repository {self.slug} not found")
        self.ref = response.json().get("default_branch") or "main"
        logger.debug(f"{self.slug}: default branch is {self.ref}")
        return self.ref

    async def list_tree(self) -> List[TreeEntry]:
        ref = await self.resolve_ref()
        cache_key = f"tree:{self.slug}@{ref}"
        cached = self.cache.get(cache_key)
        if cached is not MISSING:
            return list(cached)

        response = await self._get(f"/repos/{self.slug}/git/trees/{quote(ref, safe='')}", params={"recursive": "1"})
        if response is None:
            raise FileNotFoundError(f"Ref {ref} not found in {self.slug}")
        payload = response.json()
        if payload.get("truncated"):
            logger.warning(f"{self.slug}: tree listing truncated by the API")

        entries = []
        for item in payload.get("tree") or []:
            kind = item.get("type")
            if kind == "blob":
                entries.append(TreeEntry(path=item["path"], type=EntryType.FILE, size=int(item.get("size") or 0)))
            elif kind == "tree":
                entries.append(TreeEntry(path=item["path"], type=EntryType.DIR))
        self.cache.set(cache_key, tuple(entries))
        logger.debug(f"{self.slug}: listed {len(entries)} entries")
        return entries

    async def get_artifact(self, path: str) -> Optional[str]:
        ref = await self.resolve_ref()
        cache_key = f"{self.slug}@{ref}:{path}"
        cached = self.cache.get(cache_key)
        if cached is not MISSING:
            return cached

        response = await self._get(f"/repos/{self.slug}/contents/{quote(path)}", params={"ref": ref})
        content = None if response is None else _decode_contents(path, response.json())
        self.cache.set(cache_key, content)
        return content


def _decode_contents(path: str, payload) -> Optional[str]:
    """Decode a contents-API file payload. Directories and undecodable files are absent."""
    if not isinstance(payload, dict) or payload.get("type") != "file":
        return None
    if payload.get("encoding") != "base64":
        return payload.get("content")
    try:
        raw = base64.b64decode(payload.get("content") or "")
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Cannot decode {path}: {e}")
        return None
    return raw.decode("utf-8", errors="replace")
