"""
Snapshot Serialization
快照序列化

Flat, storable representation of a tree:

    {
        "/App.jsx": {"type": "file", "content": "..."},
        "/components": {"type": "directory"},
        "/components/Button.jsx": {"type": "file", "content": "..."},
    }

Keys appear in pre-order. The root is implied and omitted.

Loading validates the whole mapping before building anything, so a corrupt
snapshot never produces a partially-built tree.
"""

from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import CorruptSnapshot, InvalidPath
from .paths import ROOT, normalize, parent_of
from .tree import NodeKind, VirtualFileTree

logger = logging.getLogger(__name__)


class SnapshotEntry(BaseModel):
    """One node in a snapshot"""
    model_config = ConfigDict(extra="forbid")

    type: Literal["file", "directory"]
    content: Optional[str] = None


def to_snapshot(tree: VirtualFileTree) -> Dict[str, Dict[str, Any]]:
    """Serialize a tree into the flat path -> entry mapping"""
    snapshot: Dict[str, Dict[str, Any]] = {}
    for path, kind in tree.walk():
        if path == ROOT:
            continue
        if kind == NodeKind.FILE:
            snapshot[path] = {"type": "file", "content": tree.read_file(path)}
        else:
            snapshot[path] = {"type": "directory"}
    return snapshot


def from_snapshot(data: Dict[str, Any]) -> VirtualFileTree:
    """
    Rebuild a tree from a snapshot.

    Raises:
        CorruptSnapshot: the mapping is malformed or inconsistent
    """
    if not isinstance(data, dict):
        raise CorruptSnapshot(f"Snapshot must be a mapping, got {type(data).__name__}")

    entries = _validate(data)

    tree = VirtualFileTree()
    # Parents sort before their children
    for path in sorted(entries, key=lambda p: (p.count("/"), p)):
        entry = entries[path]
        if entry.type == "directory":
            tree.create_directory(path)
        else:
            tree.write_file(path, entry.content)

    logger.info(f"[Snapshot] Restored tree with {len(entries)} node(s)")
    return tree


def dumps_snapshot(tree: VirtualFileTree) -> str:
    return json.dumps(to_snapshot(tree), ensure_ascii=False)


def loads_snapshot(raw: str) -> VirtualFileTree:
    """Parse a JSON snapshot blob, rejecting duplicate keys"""
    try:
        data = json.loads(raw, object_pairs_hook=_reject_duplicates)
    except json.JSONDecodeError as e:
        raise CorruptSnapshot(f"Snapshot is not valid JSON: {e}")
    return from_snapshot(data)


# ============================================
# Validation
# ============================================

def _reject_duplicates(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise CorruptSnapshot(f"Duplicate path in snapshot: {key}", path=key)
        result[key] = value
    return result


def _validate(data: Dict[str, Any]) -> Dict[str, SnapshotEntry]:
    entries: Dict[str, SnapshotEntry] = {}

    for raw_path, raw_entry in data.items():
        try:
            path = normalize(raw_path)
        except InvalidPath as e:
            raise CorruptSnapshot(f"Invalid path in snapshot: {e.message}", path=str(raw_path))
        if path != raw_path:
            raise CorruptSnapshot(
                f"Snapshot path is not normalized: {raw_path!r} (expected {path!r})",
                path=raw_path,
            )

        try:
            entry = SnapshotEntry.model_validate(raw_entry)
        except ValidationError as e:
            raise CorruptSnapshot(
                f"Invalid entry for {path}: {e.errors()[0]['msg']}", path=path
            )

        if entry.type == "file" and entry.content is None:
            raise CorruptSnapshot(f"File entry without content: {path}", path=path)
        if entry.type == "directory" and entry.content is not None:
            raise CorruptSnapshot(f"Directory entry with content: {path}", path=path)

        if path == ROOT:
            if entry.type != "directory":
                raise CorruptSnapshot("Root must be a directory", path=path)
            continue
        entries[path] = entry

    for path in entries:
        parent = parent_of(path)
        if parent == ROOT:
            continue
        parent_entry = entries.get(parent)
        if parent_entry is None:
            raise CorruptSnapshot(f"Orphaned entry {path}: parent {parent} is missing", path=path)
        if parent_entry.type != "directory":
            raise CorruptSnapshot(f"Entry {path} has a file as its parent ({parent})", path=path)

    return entries
