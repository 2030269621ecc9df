from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Set, Tuple

from detectors.paths import classify, is_readme, is_source, is_vendored
from models.artifact import Artifact, TreeEntry
from models.enums import ArtifactKind, EntryType


@dataclass(frozen=True)
class AnalysisContext:
    """Read-only artifact snapshot shared by every analyzer in one run."""
    artifacts: Mapping[str, Artifact] = field(default_factory=dict)
    tree: Tuple[TreeEntry, ...] = ()
    _memo: Dict[Hashable, Any] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "artifacts", MappingProxyType(dict(self.artifacts)))
        tree = tuple(sorted(self.tree, key=lambda e: e.path))
        if not tree and self.artifacts:
            # No listing was provided: derive one from the artifact paths
            tree = _tree_from_paths(p for p, a in self.artifacts.items() if a.present)
        object.__setattr__(self, "tree", tree)

    @classmethod
    def build(
        cls,
        artifacts: Optional[Mapping[str, Optional[str]]] = None,
        tree: Optional[Iterable[TreeEntry]] = None,
    ) -> "AnalysisContext":
        """Create a context from a ``path -> content`` mapping and an optional listing."""
        built: Dict[str, Artifact] = {}
        for path, content in (artifacts or {}).items():
            path = path.strip("/")
            built[path] = Artifact(path=path, content=content, kind=classify(path))
        return cls(artifacts=built, tree=tuple(tree or ()))

    def content(self, path: str) -> Optional[str]:
        artifact = self.artifacts.get(path)
        return artifact.content if artifact else None

    def find_content(self, name: str) -> Optional[Tuple[str, str]]:
        """First present, non-vendored artifact whose path is ``name`` or ends with ``/name``, shallowest first."""
        matches = sorted(
            (
                p
                for p, a in self.artifacts.items()
                if a.present and not is_vendored(p) and (p == name or p.endswith("/" + name))
            ),
            key=lambda p: (p.count("/"), p),
        )
        if not matches:
            return None
        return matches[0], self.artifacts[matches[0]].content

    def readme(self) -> Optional[Tuple[str, str]]:
        candidates = sorted(
            (p for p, a in self.artifacts.items() if a.present and is_readme(p) and "/" not in p),
            key=lambda p: (not p.lower().endswith(".md"), p),
        )
        if not candidates:
            return None
        return candidates[0], self.artifacts[candidates[0]].content

    def of_kind(self, kind: ArtifactKind) -> List[Artifact]:
        return [a for p, a in sorted(self.artifacts.items()) if a.kind == kind and a.present and not is_vendored(p)]

    def source_artifacts(self) -> List[Artifact]:
        return [a for p, a in sorted(self.artifacts.items()) if a.present and is_source(p)]

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(e.path for e in self.tree if not is_vendored(e.path))

    @property
    def files(self) -> Tuple[TreeEntry, ...]:
        return tuple(e for e in self.tree if not e.is_dir and not is_vendored(e.path))

    def directories(self) -> Tuple[str, ...]:
        dirs: Set[str] = {e.path for e in self.tree if e.is_dir}
        for entry in self.tree:
            parts = entry.path.split("/")[:-1]
            for i in range(1, len(parts) + 1):
                dirs.add("/".join(parts[:i]))
        return tuple(sorted(d for d in dirs if d and not is_vendored(d)))

    def is_empty(self) -> bool:
        """No artifact content and no tree entry: nothing to assess."""
        return not self.tree and not any(a.present for a in self.artifacts.values())

    def memoized(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Compute a value once per snapshot and share it between analyzers."""
        if key not in self._memo:
            self._memo[key] = compute()
        return self._memo[key]


def _tree_from_paths(paths: Iterable[str]) -> Tuple[TreeEntry, ...]:
    return tuple(TreeEntry(path=p, type=EntryType.FILE) for p in sorted(paths))
