"""
Virtual File System Module
虚拟文件系统模块

In-memory file tree, per-file edit history and snapshot serialization
for agent-built projects. No disk I/O anywhere.
"""

from .errors import (
    ErrorKind,
    VirtualFsError,
    InvalidPath,
    NotFound,
    NotADirectory,
    AlreadyExists,
    InvalidOperation,
    TextNotFound,
    AmbiguousMatch,
    InvalidRange,
    NoHistory,
    ModuleNotFound,
    MissingEntryPoint,
    TransformError,
    CorruptSnapshot,
    InvalidCommand,
)
from .paths import EXTERNAL, ROOT, normalize, resolve_import
from .tree import NodeKind, VNode, VirtualFileTree
from .history import EditHistory, HistoryEntry
from .snapshot import (
    SnapshotEntry,
    to_snapshot,
    from_snapshot,
    dumps_snapshot,
    loads_snapshot,
)

__all__ = [
    "ErrorKind",
    "VirtualFsError",
    "InvalidPath",
    "NotFound",
    "NotADirectory",
    "AlreadyExists",
    "InvalidOperation",
    "TextNotFound",
    "AmbiguousMatch",
    "InvalidRange",
    "NoHistory",
    "ModuleNotFound",
    "MissingEntryPoint",
    "TransformError",
    "CorruptSnapshot",
    "InvalidCommand",
    "EXTERNAL",
    "ROOT",
    "normalize",
    "resolve_import",
    "NodeKind",
    "VNode",
    "VirtualFileTree",
    "EditHistory",
    "HistoryEntry",
    "SnapshotEntry",
    "to_snapshot",
    "from_snapshot",
    "dumps_snapshot",
    "loads_snapshot",
]
