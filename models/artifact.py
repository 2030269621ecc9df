from dataclasses import dataclass
from typing import Optional

from models.enums import ArtifactKind, EntryType


@dataclass(frozen=True)
class Artifact:
    """A named raw input. ``content=None`` means the source reported it absent."""
    path: str
    content: Optional[str]
    kind: ArtifactKind = ArtifactKind.OTHER

    @property
    def present(self) -> bool:
        return self.content is not None


@dataclass(frozen=True)
class TreeEntry:
    """One entry of the repository file listing."""
    path: str
    type: EntryType = EntryType.FILE
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return self.type == EntryType.DIR

    @property
    def depth(self) -> int:
        return self.path.count("/")
