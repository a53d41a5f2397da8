"""
Edit History

Per-file undo stacks. Each successful content-replacing edit pushes the
content the file had *before* the edit; ``undo_edit`` pops it back.

An entry whose ``previous_content`` is None means the file did not exist
before the edit (it was created), so restoring it deletes the file.
"""

from __future__ import annotations
import itertools
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass

from .errors import NoHistory
from .paths import is_descendant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    path: str
    previous_content: Optional[str]
    ordinal: int

    @property
    def restores_absence(self) -> bool:
        return self.previous_content is None


class EditHistory:
    """Undo stacks keyed by normalized file path"""

    def __init__(self):
        self._stacks: Dict[str, List[HistoryEntry]] = {}
        self._counter = itertools.count(1)

    def push(self, path: str, previous_content: Optional[str]) -> HistoryEntry:
        entry = HistoryEntry(
            path=path,
            previous_content=previous_content,
            ordinal=next(self._counter),
        )
        self._stacks.setdefault(path, []).append(entry)
        return entry

    def pop(self, path: str) -> HistoryEntry:
        stack = self._stacks.get(path)
        if not stack:
            raise NoHistory(f"No edit history for {path}", path=path)
        entry = stack.pop()
        if not stack:
            del self._stacks[path]
        return entry

    def depth(self, path: str) -> int:
        return len(self._stacks.get(path, ()))

    def discard(self, path: str) -> int:
        """Drop the stacks for ``path`` and everything below it"""
        doomed = [p for p in self._stacks if p == path or is_descendant(p, path)]
        for p in doomed:
            del self._stacks[p]
        if doomed:
            logger.debug(f"[EditHistory] Discarded history for {len(doomed)} path(s) under {path}")
        return len(doomed)

    def move(self, moved: Dict[str, str]) -> None:
        """Re-key stacks after a rename (old path -> new path)"""
        carried = {
            new: self._stacks.pop(old)
            for old, new in moved.items()
            if old in self._stacks
        }
        for new, stack in carried.items():
            self._stacks[new] = [
                HistoryEntry(path=new, previous_content=e.previous_content, ordinal=e.ordinal)
                for e in stack
            ]

    def tracked_paths(self) -> List[str]:
        return sorted(self._stacks)
