"""
Editor Tool Commands

Pydantic models for the two tools the model loop can call:

- str_replace_editor: view / create / str_replace / insert / undo_edit
- file_manager:       rename / delete

Each tool is a closed set of variants discriminated by the ``command``
field, so parsing a raw tool call yields exactly one concrete model.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Literal, Union, Annotated
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ToolName(str, Enum):
    STR_REPLACE_EDITOR = "str_replace_editor"
    FILE_MANAGER = "file_manager"


class _Command(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(..., description="Absolute path inside the virtual tree")


# ============================================
# str_replace_editor
# ============================================

class ViewCommand(_Command):
    command: Literal["view"] = "view"
    view_range: Optional[List[int]] = Field(
        None, description="[start, end] 1-based lines; end -1 means end of file"
    )


class CreateCommand(_Command):
    command: Literal["create"] = "create"
    file_text: str = ""


class StrReplaceCommand(_Command):
    command: Literal["str_replace"] = "str_replace"
    old_str: str = Field(..., min_length=1)
    new_str: str = ""


class InsertCommand(_Command):
    command: Literal["insert"] = "insert"
    insert_line: int = Field(..., ge=0)
    new_str: str


class UndoEditCommand(_Command):
    command: Literal["undo_edit"] = "undo_edit"


EditorCommand = Annotated[
    Union[ViewCommand, CreateCommand, StrReplaceCommand, InsertCommand, UndoEditCommand],
    Field(discriminator="command"),
]


# ============================================
# file_manager
# ============================================

class RenameCommand(_Command):
    command: Literal["rename"] = "rename"
    new_path: str


class DeleteCommand(_Command):
    command: Literal["delete"] = "delete"


FileManagerCommand = Annotated[
    Union[RenameCommand, DeleteCommand],
    Field(discriminator="command"),
]


EDITOR_COMMAND_ADAPTER: TypeAdapter = TypeAdapter(EditorCommand)
FILE_MANAGER_COMMAND_ADAPTER: TypeAdapter = TypeAdapter(FileManagerCommand)

COMMAND_ADAPTERS: Dict[str, TypeAdapter] = {
    ToolName.STR_REPLACE_EDITOR.value: EDITOR_COMMAND_ADAPTER,
    ToolName.FILE_MANAGER.value: FILE_MANAGER_COMMAND_ADAPTER,
}


# ============================================
# Results
# ============================================

class ToolResult(BaseModel):
    """Outcome of one tool call, summarised for the transcript"""
    ok: bool
    summary: str
    error: Optional[str] = None
    error_kind: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class ToolCallRequest(BaseModel):
    """A raw tool call as emitted by the model loop"""
    tool: str = Field(..., description="str_replace_editor or file_manager")
    args: Dict[str, Any] = Field(default_factory=dict)
