"""
Virtual File System Errors

Every failure the core can report is a recoverable condition. Each error
carries a machine-readable ``kind`` so the tool layer, the bundler and the
HTTP routes can turn it into a structured result instead of crashing.
"""

from __future__ import annotations
from typing import Optional
from enum import Enum


class ErrorKind(str, Enum):
    """Error kinds reported back to callers"""
    INVALID_PATH = "InvalidPath"
    NOT_FOUND = "NotFound"
    NOT_A_DIRECTORY = "NotADirectory"
    ALREADY_EXISTS = "AlreadyExists"
    INVALID_OPERATION = "InvalidOperation"
    TEXT_NOT_FOUND = "TextNotFound"
    AMBIGUOUS_MATCH = "AmbiguousMatch"
    INVALID_RANGE = "InvalidRange"
    NO_HISTORY = "NoHistory"
    MODULE_NOT_FOUND = "ModuleNotFound"
    MISSING_ENTRY_POINT = "MissingEntryPoint"
    TRANSFORM_ERROR = "TransformError"
    CORRUPT_SNAPSHOT = "CorruptSnapshot"
    INVALID_COMMAND = "InvalidCommand"


class VirtualFsError(Exception):
    """Base class for all core errors"""

    kind: ErrorKind = ErrorKind.INVALID_OPERATION

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "path": self.path,
        }


class InvalidPath(VirtualFsError):
    kind = ErrorKind.INVALID_PATH


class NotFound(VirtualFsError):
    kind = ErrorKind.NOT_FOUND


class NotADirectory(VirtualFsError):
    kind = ErrorKind.NOT_A_DIRECTORY


class AlreadyExists(VirtualFsError):
    kind = ErrorKind.ALREADY_EXISTS


class InvalidOperation(VirtualFsError):
    kind = ErrorKind.INVALID_OPERATION


class TextNotFound(VirtualFsError):
    kind = ErrorKind.TEXT_NOT_FOUND


class AmbiguousMatch(VirtualFsError):
    kind = ErrorKind.AMBIGUOUS_MATCH


class InvalidRange(VirtualFsError):
    kind = ErrorKind.INVALID_RANGE


class NoHistory(VirtualFsError):
    kind = ErrorKind.NO_HISTORY


class ModuleNotFound(VirtualFsError):
    kind = ErrorKind.MODULE_NOT_FOUND


class MissingEntryPoint(VirtualFsError):
    kind = ErrorKind.MISSING_ENTRY_POINT


class TransformError(VirtualFsError):
    """Syntax problem found while transforming a module"""

    kind = ErrorKind.TRANSFORM_ERROR

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(message, path)
        self.line = line
        self.column = column

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["line"] = self.line
        data["column"] = self.column
        return data


class CorruptSnapshot(VirtualFsError):
    kind = ErrorKind.CORRUPT_SNAPSHOT


class InvalidCommand(VirtualFsError):
    kind = ErrorKind.INVALID_COMMAND
