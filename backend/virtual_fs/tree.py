"""
Virtual File Tree
虚拟文件树

In-memory hierarchical store of files and directories. Nothing here touches
the real disk.

The tree is an arena: a single dict keyed by normalized path owns every
node, and directories only record the *names* of their children. Recursive
delete and rename are prefix operations on that dict, so there are no
parent back-pointers to keep in sync.

Invariants:
- "/" always exists, is a directory, and can be neither deleted nor renamed
- every non-root node's parent exists and is a directory
- a path denotes exactly one kind at a time
"""

from __future__ import annotations
import logging
from typing import Dict, Iterator, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum

from .errors import (
    AlreadyExists,
    InvalidOperation,
    NotADirectory,
    NotFound,
)
from .paths import ROOT, basename, is_descendant, normalize, parent_of

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class VNode:
    """A file or a directory"""
    path: str
    kind: NodeKind
    content: Optional[str] = None           # files only
    children: Dict[str, None] = field(default_factory=dict)  # directories only, child names

    @property
    def name(self) -> str:
        return basename(self.path) if self.path != ROOT else ""

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind == NodeKind.DIRECTORY


class VirtualFileTree:
    """
    Owning store for all nodes reachable from "/".

    Paths passed in are normalized on entry, so callers may use
    "App.jsx" or "/components/../App.jsx" interchangeably.
    """

    def __init__(self):
        self._nodes: Dict[str, VNode] = {
            ROOT: VNode(path=ROOT, kind=NodeKind.DIRECTORY)
        }

    # ============================================
    # Queries
    # ============================================

    def exists(self, path: str) -> bool:
        return normalize(path) in self._nodes

    def is_file(self, path: str) -> bool:
        node = self._nodes.get(normalize(path))
        return node is not None and node.is_file

    def is_directory(self, path: str) -> bool:
        node = self._nodes.get(normalize(path))
        return node is not None and node.is_directory

    def get_node(self, path: str) -> Optional[VNode]:
        return self._nodes.get(normalize(path))

    def read_file(self, path: str) -> str:
        """
        Read a file's content.

        Raises:
            NotFound: path is absent or is a directory
        """
        path = normalize(path)
        node = self._nodes.get(path)
        if node is None:
            raise NotFound(f"File not found: {path}", path=path)
        if not node.is_file:
            raise NotFound(f"Not a file: {path} is a directory", path=path)
        return node.content

    def list(self, path: str = ROOT) -> List[str]:
        """Sorted child names of a directory"""
        path = normalize(path)
        node = self._nodes.get(path)
        if node is None:
            raise NotFound(f"Directory not found: {path}", path=path)
        if not node.is_directory:
            raise NotADirectory(f"Not a directory: {path}", path=path)
        return sorted(node.children)

    def walk(self) -> Iterator[Tuple[str, NodeKind]]:
        """
        Pre-order traversal of the whole tree, root first.

        Directories come before their children, siblings in name order.
        Each call starts a fresh traversal.
        """
        stack = [ROOT]
        while stack:
            path = stack.pop()
            node = self._nodes[path]
            yield path, node.kind
            if node.is_directory:
                prefix = "" if path == ROOT else path
                for name in sorted(node.children, reverse=True):
                    stack.append(f"{prefix}/{name}")

    def file_paths(self) -> List[str]:
        return [path for path, kind in self.walk() if kind == NodeKind.FILE]

    @property
    def file_count(self) -> int:
        return sum(1 for node in self._nodes.values() if node.is_file)

    def render_tree(self, path: str = ROOT) -> str:
        """Indented listing of a directory, used by the view command"""
        path = normalize(path)
        self.list(path)  # raises for missing / non-directory

        lines = [path]
        depth_base = 0 if path == ROOT else path.count("/")
        for node_path, kind in self.walk():
            if node_path == path or not is_descendant(node_path, path):
                continue
            depth = node_path.count("/") - depth_base
            suffix = "/" if kind == NodeKind.DIRECTORY else ""
            lines.append(f"{'  ' * depth}{basename(node_path)}{suffix}")
        return "\n".join(lines)

    # ============================================
    # Mutations
    # ============================================

    def write_file(self, path: str, content: str) -> None:
        """
        Create or overwrite a file, creating missing ancestors.

        Does not record history; undo-aware callers go through the
        tool executor.
        """
        path = normalize(path)
        if path == ROOT:
            raise InvalidOperation("Cannot write to the root directory", path=path)

        node = self._nodes.get(path)
        if node is not None:
            if not node.is_file:
                raise InvalidOperation(f"Cannot write file: {path} is a directory", path=path)
            node.content = content
            logger.debug(f"[VirtualFileTree] Overwrote {path} ({len(content)} chars)")
            return

        self._check_ancestors(path)
        self._ensure_directory(parent_of(path))
        self._attach(VNode(path=path, kind=NodeKind.FILE, content=content))
        logger.debug(f"[VirtualFileTree] Created {path} ({len(content)} chars)")

    def create_directory(self, path: str) -> None:
        """Create a directory and its ancestors; no-op if it already exists"""
        path = normalize(path)
        node = self._nodes.get(path)
        if node is not None:
            if not node.is_directory:
                raise AlreadyExists(f"A file already exists at {path}", path=path)
            return
        self._check_ancestors(path)
        self._ensure_directory(path)

    def delete_node(self, path: str) -> List[str]:
        """
        Remove a file, or a directory with everything below it.

        Returns:
            All removed paths (the node itself first)
        """
        path = normalize(path)
        if path == ROOT:
            raise InvalidOperation("Cannot delete the root directory", path=path)
        if path not in self._nodes:
            raise NotFound(f"Path not found: {path}", path=path)

        removed = [p for p in self._nodes if p == path or is_descendant(p, path)]
        for p in removed:
            del self._nodes[p]
        self._nodes[parent_of(path)].children.pop(basename(path), None)

        logger.info(f"[VirtualFileTree] Deleted {path} ({len(removed)} node(s))")
        return sorted(removed, key=lambda p: (p != path, p))

    def rename_node(self, old_path: str, new_path: str) -> Dict[str, str]:
        """
        Move a node (and its subtree) to a new path.

        Missing parents of the destination are created as directories.

        Returns:
            Mapping of every moved old path to its new path
        """
        old_path = normalize(old_path)
        new_path = normalize(new_path)

        if old_path == ROOT:
            raise InvalidOperation("Cannot rename the root directory", path=old_path)
        if old_path not in self._nodes:
            raise NotFound(f"Source not found: {old_path}", path=old_path)
        if new_path in self._nodes:
            raise AlreadyExists(f"Destination already exists: {new_path}", path=new_path)
        if is_descendant(new_path, old_path):
            raise InvalidOperation(
                f"Cannot move {old_path} inside itself ({new_path})", path=new_path
            )
        self._check_ancestors(new_path)

        moved = {
            p: new_path + p[len(old_path):]
            for p in self._nodes
            if p == old_path or is_descendant(p, old_path)
        }

        self._ensure_directory(parent_of(new_path))
        self._nodes[parent_of(old_path)].children.pop(basename(old_path), None)

        nodes = {p: self._nodes.pop(p) for p in moved}
        for old, new in moved.items():
            node = nodes[old]
            node.path = new
            self._nodes[new] = node
        self._nodes[parent_of(new_path)].children[basename(new_path)] = None

        logger.info(f"[VirtualFileTree] Renamed {old_path} -> {new_path}")
        return moved

    # ============================================
    # Internal helpers
    # ============================================

    def _check_ancestors(self, path: str) -> None:
        """Fail before mutating if some ancestor of ``path`` is a file"""
        current = parent_of(path)
        while True:
            node = self._nodes.get(current)
            if node is not None:
                if not node.is_directory:
                    raise NotADirectory(
                        f"Cannot create {path}: {current} is a file", path=current
                    )
                return
            current = parent_of(current)

    def _ensure_directory(self, path: str) -> None:
        missing = []
        current = path
        while current not in self._nodes:
            missing.append(current)
            current = parent_of(current)
        for directory in reversed(missing):
            self._attach(VNode(path=directory, kind=NodeKind.DIRECTORY))

    def _attach(self, node: VNode) -> None:
        self._nodes[node.path] = node
        self._nodes[parent_of(node.path)].children[node.name] = None
