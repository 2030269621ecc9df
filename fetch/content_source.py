"""Content sources: where artifacts and the file listing come from.

A source reports an absent file as ``None`` and never raises for it. Transport
failures do raise; the engine turns them into a fetch-phase AnalysisError.
"""
from typing import List, Mapping, Optional, Protocol, Sequence

from models.artifact import TreeEntry


class ContentSource(Protocol):
    async def get_artifact(self, path: str) -> Optional[str]:
        ...

    async def list_tree(self) -> List[TreeEntry]:
        ...


class InMemoryContentSource:
    """Serves a fixed snapshot; the listing defaults to the artifact paths."""

    def __init__(self, artifacts: Mapping[str, Optional[str]], tree: Optional[Sequence[TreeEntry]] = None):
        self._artifacts = dict(artifacts)
        if tree is None:
            tree = [
                TreeEntry(path=p, size=len(c.encode("utf-8")))
                for p, c in sorted(self._artifacts.items())
                if c is not None
            ]
        self._tree = list(tree)

    async def get_artifact(self, path: str) -> Optional[str]:
        return self._artifacts.get(path)

    async def list_tree(self) -> List[TreeEntry]:
        return list(self._tree)
