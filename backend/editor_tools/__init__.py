"""
Editor Tools Module

The tool layer the model loop drives: str_replace_editor and file_manager
commands applied atomically to a virtual file tree.
"""

from .commands import (
    ToolName,
    ViewCommand,
    CreateCommand,
    StrReplaceCommand,
    InsertCommand,
    UndoEditCommand,
    RenameCommand,
    DeleteCommand,
    ToolResult,
    ToolCallRequest,
)
from .executor import ToolExecutor
from .definitions import get_tool_definitions, describe_tool_call

__all__ = [
    "ToolName",
    "ViewCommand",
    "CreateCommand",
    "StrReplaceCommand",
    "InsertCommand",
    "UndoEditCommand",
    "RenameCommand",
    "DeleteCommand",
    "ToolResult",
    "ToolCallRequest",
    "ToolExecutor",
    "get_tool_definitions",
    "describe_tool_call",
]
