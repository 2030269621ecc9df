import asyncio
import logging
import os
from typing import List, Optional

from detectors.paths import VENDORED_DIRS
from models.artifact import TreeEntry
from models.enums import EntryType

logger = logging.getLogger(__name__)


class LocalContentSource:
    """A checked-out repository on disk. Blocking file I/O runs in worker threads."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        if not os.path.isdir(self.root):
            raise NotADirectoryError(self.root)

    def _resolve(self, path: str) -> Optional[str]:
        full = os.path.abspath(os.path.join(self.root, path))
        # Refuse paths that escape the checkout
        if os.path.commonpath([self.root, full]) != self.root:
            logger.warning(f"Refusing path outside repository: {path}")
            return None
        return full

    def _read(self, path: str) -> Optional[str]:
        full = self._resolve(path)
        if full is None or not os.path.isfile(full):
            return None
        with open(full, "rb") as f:
            data = f.read()
        if b"\0" in data[:8000]:
            logger.debug(f"Skipping binary file {path}")
            return None
        return data.decode("utf-8", errors="replace")

    def _walk(self) -> List[TreeEntry]:
        entries: List[TreeEntry] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in VENDORED_DIRS)
            rel_dir = os.path.relpath(dirpath, self.root)
            prefix = "" if rel_dir == "." else rel_dir.replace(os.sep, "/") + "/"
            for d in dirnames:
                entries.append(TreeEntry(path=prefix + d, type=EntryType.DIR))
            for name in sorted(filenames):
                full = os.path.join(dirpath, name)
                try:
                    size = os.path.getsize(full)
                except OSError:
                    continue
                entries.append(TreeEntry(path=prefix + name, type=EntryType.FILE, size=size))
        return entries

    async def get_artifact(self, path: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, path)

    async def list_tree(self) -> List[TreeEntry]:
        entries = await asyncio.to_thread(self._walk)
        logger.debug(f"Listed {len(entries)} entries under {self.root}")
        return entries
