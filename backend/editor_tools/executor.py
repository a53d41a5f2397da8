"""
Editor Tool Executor

Applies structured tool calls from the model loop to a VirtualFileTree and
its EditHistory.

Contract for every command:
1. Parse - raw args are validated into exactly one command variant
2. Check - every precondition is verified before anything is written
3. Apply - the tree (and history) change in one step
4. Report - a ToolResult describing what changed is returned

A failed call never leaves a partial write behind, and no error escapes
``execute``: failures come back as ``ToolResult(ok=False)`` with the
error kind, so the caller can retry, ask for more context (notably after
an AmbiguousMatch) or surface the problem.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from virtual_fs import (
    AlreadyExists,
    AmbiguousMatch,
    EditHistory,
    InvalidCommand,
    InvalidRange,
    NotFound,
    TextNotFound,
    VirtualFileTree,
    VirtualFsError,
    normalize,
)
from .commands import (
    COMMAND_ADAPTERS,
    CreateCommand,
    DeleteCommand,
    InsertCommand,
    RenameCommand,
    StrReplaceCommand,
    ToolCallRequest,
    ToolResult,
    UndoEditCommand,
    ViewCommand,
)

logger = logging.getLogger(__name__)


def split_lines(content: str) -> Tuple[List[str], bool]:
    """Split content into lines, reporting whether it ended with a newline"""
    if content == "":
        return [], False
    trailing = content.endswith("\n")
    body = content[:-1] if trailing else content
    return body.split("\n"), trailing


def number_lines(lines: List[str], start: int = 1) -> str:
    return "\n".join(f"{i:>6}|{line}" for i, line in enumerate(lines, start))


class ToolExecutor:
    """
    Sequential, atomic executor for editor tool calls.

    One executor owns one tree and one history. Commands are applied one at
    a time in the order given; later commands see the state left by
    earlier ones.
    """

    def __init__(
        self,
        tree: Optional[VirtualFileTree] = None,
        history: Optional[EditHistory] = None,
    ):
        self.tree = tree if tree is not None else VirtualFileTree()
        self.history = history if history is not None else EditHistory()

        self._handlers: Dict[type, Callable[[Any], ToolResult]] = {
            ViewCommand: self._view,
            CreateCommand: self._create,
            StrReplaceCommand: self._str_replace,
            InsertCommand: self._insert,
            UndoEditCommand: self._undo_edit,
            RenameCommand: self._rename,
            DeleteCommand: self._delete,
        }

        self._stats = {"executed": 0, "successful": 0, "failed": 0}

    # ============================================
    # Public API
    # ============================================

    def execute(self, tool: str, args: Dict[str, Any]) -> ToolResult:
        """
        Parse and apply one raw tool call.

        Args:
            tool: "str_replace_editor" or "file_manager"
            args: Tool arguments, including the ``command`` tag

        Returns:
            ToolResult (never raises for command-level failures)
        """
        self._stats["executed"] += 1
        label = f"{tool}.{args.get('command')}" if isinstance(args, dict) else tool
        try:
            command = self.parse(tool, args)
            result = self.apply(command)
        except VirtualFsError as e:
            self._stats["failed"] += 1
            logger.warning(
                f"[ToolExecutor] {label} failed: {e.kind.value}: {e.message}"
            )
            return ToolResult(
                ok=False,
                summary=e.message,
                error=e.message,
                error_kind=e.kind.value,
                data=e.to_dict(),
            )

        self._stats["successful"] += 1
        logger.info(f"[ToolExecutor] {tool}.{command.command}: {result.summary}")
        return result

    def execute_many(self, calls: Iterable[ToolCallRequest]) -> List[ToolResult]:
        """Apply calls strictly in order; every call gets its own result"""
        return [self.execute(call.tool, call.args) for call in calls]

    def parse(self, tool: str, args: Dict[str, Any]):
        """Validate raw args into a command variant"""
        adapter = COMMAND_ADAPTERS.get(tool)
        if adapter is None:
            raise InvalidCommand(
                f"Unknown tool '{tool}'. Available tools: {sorted(COMMAND_ADAPTERS)}"
            )
        if not isinstance(args, dict):
            raise InvalidCommand(f"Arguments for {tool} must be an object")
        try:
            return adapter.validate_python(args)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'args'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidCommand(f"Invalid {tool} call: {problems}", path=args.get("path"))

    def apply(self, command) -> ToolResult:
        """Apply an already-parsed command; raises VirtualFsError on failure"""
        handler = self._handlers.get(type(command))
        if handler is None:
            raise InvalidCommand(f"Unsupported command: {type(command).__name__}")
        return handler(command)

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # ============================================
    # str_replace_editor
    # ============================================

    def _view(self, cmd: ViewCommand) -> ToolResult:
        path = normalize(cmd.path)
        node = self.tree.get_node(path)
        if node is None:
            raise NotFound(f"Path not found: {path}", path=path)

        if node.is_directory:
            listing = self.tree.render_tree(path)
            return ToolResult(
                ok=True,
                summary=f"Listed directory {path}",
                data={"path": path, "kind": "directory", "listing": listing},
            )

        lines, _ = split_lines(node.content)
        start, end = 1, len(lines)
        if cmd.view_range is not None:
            start, end = self._check_view_range(path, cmd.view_range, len(lines))

        shown = lines[start - 1:end]
        return ToolResult(
            ok=True,
            summary=f"Viewed {path} ({len(lines)} lines)",
            data={
                "path": path,
                "kind": "file",
                "content": node.content,
                "numbered": number_lines(shown, start),
                "line_count": len(lines),
            },
        )

    def _create(self, cmd: CreateCommand) -> ToolResult:
        path = normalize(cmd.path)
        if self.tree.is_file(path):
            raise AlreadyExists(
                f"File already exists: {path}. Use str_replace to edit it.", path=path
            )

        self.tree.write_file(path, cmd.file_text)
        self.history.push(path, None)
        return ToolResult(
            ok=True,
            summary=f"Created {path} ({len(cmd.file_text)} chars)",
            data={"path": path, "old_content": None, "new_content": cmd.file_text},
        )

    def _str_replace(self, cmd: StrReplaceCommand) -> ToolResult:
        path = normalize(cmd.path)
        content = self.tree.read_file(path)

        line_nums = self._occurrence_lines(content, cmd.old_str)
        count = len(line_nums)
        if count == 0:
            raise TextNotFound(
                f"Text not found in {path}. The text to replace must match exactly, "
                f"including whitespace and indentation.",
                path=path,
            )
        if count > 1:
            raise AmbiguousMatch(
                f"Found {count} occurrences of the text in {path} at lines {line_nums}. "
                f"Provide more context to make the match unique.",
                path=path,
            )

        new_content = content.replace(cmd.old_str, cmd.new_str, 1)
        self.history.push(path, content)
        self.tree.write_file(path, new_content)
        return ToolResult(
            ok=True,
            summary=f"Replaced text in {path}",
            data={"path": path, "old_content": content, "new_content": new_content},
        )

    def _insert(self, cmd: InsertCommand) -> ToolResult:
        path = normalize(cmd.path)
        content = self.tree.read_file(path)

        lines, trailing = split_lines(content)
        if cmd.insert_line > len(lines):
            raise InvalidRange(
                f"insert_line {cmd.insert_line} is beyond the end of {path} "
                f"({len(lines)} lines)",
                path=path,
            )

        text = cmd.new_str[:-1] if cmd.new_str.endswith("\n") else cmd.new_str
        merged = lines[:cmd.insert_line] + text.split("\n") + lines[cmd.insert_line:]
        new_content = "\n".join(merged) + ("\n" if trailing else "")

        self.history.push(path, content)
        self.tree.write_file(path, new_content)
        return ToolResult(
            ok=True,
            summary=f"Inserted text after line {cmd.insert_line} of {path}",
            data={"path": path, "old_content": content, "new_content": new_content},
        )

    def _undo_edit(self, cmd: UndoEditCommand) -> ToolResult:
        path = normalize(cmd.path)
        entry = self.history.pop(path)
        current = self.tree.read_file(path) if self.tree.is_file(path) else None

        if entry.restores_absence:
            if self.tree.exists(path):
                self.tree.delete_node(path)
            return ToolResult(
                ok=True,
                summary=f"Undid creation of {path}; file removed",
                data={"path": path, "old_content": current, "new_content": None},
            )

        self.tree.write_file(path, entry.previous_content)
        return ToolResult(
            ok=True,
            summary=f"Restored previous content of {path}",
            data={"path": path, "old_content": current, "new_content": entry.previous_content},
        )

    # ============================================
    # file_manager
    # ============================================

    def _rename(self, cmd: RenameCommand) -> ToolResult:
        old_path = normalize(cmd.path)
        new_path = normalize(cmd.new_path)

        moved = self.tree.rename_node(old_path, new_path)
        self.history.move(moved)
        return ToolResult(
            ok=True,
            summary=f"Renamed {old_path} to {new_path}",
            data={"old_path": old_path, "new_path": new_path, "moved": moved},
        )

    def _delete(self, cmd: DeleteCommand) -> ToolResult:
        path = normalize(cmd.path)

        removed = self.tree.delete_node(path)
        self.history.discard(path)
        return ToolResult(
            ok=True,
            summary=f"Deleted {path}" + (f" and {len(removed) - 1} nested item(s)" if len(removed) > 1 else ""),
            data={"path": path, "removed": removed},
        )

    # ============================================
    # Helpers
    # ============================================

    @staticmethod
    def _occurrence_lines(content: str, needle: str) -> List[int]:
        """Line of every match, overlapping ones included"""
        line_nums = []
        start = content.find(needle)
        while start != -1:
            line_nums.append(content.count("\n", 0, start) + 1)
            start = content.find(needle, start + 1)
        return line_nums

    @staticmethod
    def _check_view_range(path: str, view_range: List[int], line_count: int) -> Tuple[int, int]:
        if len(view_range) != 2:
            raise InvalidRange("view_range must be [start, end]", path=path)
        start, end = view_range
        if end == -1:
            end = line_count
        if start < 1 or start > max(line_count, 1) or end < start - 1 or end > line_count:
            raise InvalidRange(
                f"view_range {view_range} is outside {path} ({line_count} lines)", path=path
            )
        return start, end
