"""
Project Session Store
项目会话存储

Thread-safe in-memory ownership of one virtual file tree per project
session.

Features:
- Thread-safe registry with Lock
- TTL-based automatic expiration
- LRU eviction when max entries exceeded
- Per-session lock: tool calls of one session are applied strictly in order
- Previews are built from a snapshot, never from the live tree
"""

import time
import uuid
import logging
from typing import Dict, Any, Iterable, Optional, List
from dataclasses import dataclass, field
from threading import Lock
from datetime import datetime

import canvas_config as config
from editor_tools import ToolCallRequest, ToolExecutor, ToolResult
from preview_bundler import BuildResult, build_preview
from virtual_fs import AlreadyExists, from_snapshot, to_snapshot

logger = logging.getLogger(__name__)


@dataclass
class ProjectSession:
    """
    One project's file tree, its edit history and the executor driving them
    """
    id: str
    executor: ToolExecutor
    timestamp: float                 # Unix timestamp when created
    last_used: float                 # Unix timestamp of the last access
    ttl: float = 86400.0             # Time to live since last use, in seconds
    lock: Lock = field(default_factory=Lock, repr=False)

    @property
    def is_expired(self) -> bool:
        return time.time() - self.last_used >= self.ttl

    @property
    def created_at(self) -> str:
        return datetime.fromtimestamp(self.timestamp).isoformat()

    @property
    def tree(self):
        return self.executor.tree

    def touch(self) -> None:
        self.last_used = time.time()

    def apply_tool_calls(self, calls: Iterable[ToolCallRequest]) -> List[ToolResult]:
        """Apply a turn's tool calls in order, one session at a time"""
        with self.lock:
            self.touch()
            return self.executor.execute_many(calls)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self.lock:
            self.touch()
            return to_snapshot(self.executor.tree)

    def preview(self) -> BuildResult:
        """
        Build the preview against an immutable copy of the tree, so a
        concurrent command sequence is never observed half-applied.
        """
        frozen = from_snapshot(self.snapshot())
        return build_preview(frozen)

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "last_used": self.last_used,
            "file_count": self.executor.tree.file_count,
            "stats": self.executor.stats,
        }


class ProjectSessionStore:
    """
    Thread-safe registry of project sessions

    Features:
    - Maximum entry limit with LRU eviction
    - TTL-based automatic expiration
    """

    def __init__(
        self,
        max_entries: int = config.SESSION_MAX_ENTRIES,
        default_ttl: float = config.SESSION_TTL_SECONDS,
    ):
        self._sessions: Dict[str, ProjectSession] = {}
        self._lock = Lock()
        self._max_entries = max_entries
        self._default_ttl = default_ttl

    def create(
        self,
        snapshot: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ProjectSession:
        """
        Create a session, optionally rehydrated from a snapshot.

        Raises:
            CorruptSnapshot: the snapshot is inconsistent (nothing is created)
            AlreadyExists: ``session_id`` is already taken
        """
        tree = from_snapshot(snapshot) if snapshot else None
        executor = ToolExecutor(tree=tree)

        with self._lock:
            self._cleanup_expired()

            if session_id and session_id in self._sessions:
                raise AlreadyExists(f"Session already exists: {session_id}")

            while len(self._sessions) >= self._max_entries:
                oldest_id = min(
                    self._sessions,
                    key=lambda k: self._sessions[k].last_used
                )
                logger.info(f"[SessionStore] Evicting least recently used session {oldest_id}")
                del self._sessions[oldest_id]

            now = time.time()
            session = ProjectSession(
                id=session_id or uuid.uuid4().hex[:12],
                executor=executor,
                timestamp=now,
                last_used=now,
                ttl=self._default_ttl,
            )
            self._sessions[session.id] = session

        logger.info(
            f"[SessionStore] Created session {session.id} "
            f"({executor.tree.file_count} file(s) restored)"
        )
        return session

    def get(self, session_id: str) -> Optional[ProjectSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session and not session.is_expired:
                session.touch()
                return session
            if session and session.is_expired:
                del self._sessions[session_id]
            return None

    def list_all(self) -> List[ProjectSession]:
        """Live sessions, most recently used first"""
        with self._lock:
            self._cleanup_expired()
            return sorted(
                self._sessions.values(),
                key=lambda s: -s.last_used
            )

    def delete(self, session_id: str) -> bool:
        with self._lock:
            if session_id in self._sessions:
                del self._sessions[session_id]
                logger.info(f"[SessionStore] Deleted session {session_id}")
                return True
            return False

    def clear(self) -> int:
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            return count

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_sessions": len(self._sessions),
                "max_sessions": self._max_entries,
                "total_files": sum(s.executor.tree.file_count for s in self._sessions.values()),
                "default_ttl_hours": self._default_ttl / 3600,
            }

    def _cleanup_expired(self) -> int:
        """Remove expired sessions (assumes lock held)"""
        expired = [k for k, v in self._sessions.items() if v.is_expired]
        for k in expired:
            del self._sessions[k]
        if expired:
            logger.info(f"[SessionStore] Expired {len(expired)} session(s)")
        return len(expired)


# Global singleton instance
project_sessions = ProjectSessionStore()
