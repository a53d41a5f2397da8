"""
Editor Tool Definitions

Tool schemas handed to the model loop (Claude tool-definition format), and
the short action labels a chat transcript shows while a call is running.
"""

from typing import Any, Dict, List, Optional

import canvas_config as config


def get_tool_definitions() -> List[dict]:
    """
    Get tool definitions in Claude API format.

    Returns:
        List of tool definition dicts
    """
    return [
        {
            "name": "str_replace_editor",
            "description": (
                "View, create and edit files in the project's virtual file system. "
                "Paths are absolute (e.g. '/App.jsx', '/components/Button.jsx'). "
                "str_replace requires old_str to match exactly once; if it matches "
                "more than once, include more surrounding lines. "
                f"Local imports between files use the '{config.IMPORT_ALIAS}' alias."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "command": {
                        "type": "string",
                        "enum": ["view", "create", "str_replace", "insert", "undo_edit"],
                        "description": "The operation to perform",
                    },
                    "path": {
                        "type": "string",
                        "description": "Absolute path of the file or directory",
                    },
                    "file_text": {
                        "type": "string",
                        "description": "Content of the new file (create)",
                    },
                    "old_str": {
                        "type": "string",
                        "description": "Exact text to replace; must occur exactly once (str_replace)",
                    },
                    "new_str": {
                        "type": "string",
                        "description": "Replacement text (str_replace) or text to insert (insert)",
                    },
                    "insert_line": {
                        "type": "integer",
                        "description": "Insert after this 1-based line; 0 inserts at the top (insert)",
                    },
                    "view_range": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Optional [start, end] lines to show; end -1 means end of file (view)",
                    },
                },
                "required": ["command", "path"],
            },
        },
        {
            "name": "file_manager",
            "description": (
                "Rename/move or delete files and directories in the virtual file system. "
                "Deleting a directory removes everything inside it. Missing parent "
                "directories of a rename destination are created automatically."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "command": {
                        "type": "string",
                        "enum": ["rename", "delete"],
                        "description": "The operation to perform",
                    },
                    "path": {
                        "type": "string",
                        "description": "Absolute path of the file or directory",
                    },
                    "new_path": {
                        "type": "string",
                        "description": "Destination path (rename)",
                    },
                },
                "required": ["command", "path"],
            },
        },
    ]


def _file_name(path: Optional[str]) -> str:
    return path.split("/")[-1] if path else "file"


def describe_tool_call(tool_name: str, args: Optional[Dict[str, Any]] = None) -> str:
    """
    Human-readable label for a tool call, e.g. "Creating Button.tsx".
    """
    if tool_name == "str_replace_editor" and args:
        command = args.get("command")
        file_name = _file_name(args.get("path"))
        labels = {
            "create": f"Creating {file_name}",
            "str_replace": f"Editing {file_name}",
            "view": f"Viewing {file_name}",
            "insert": f"Adding content to {file_name}",
            "undo_edit": f"Undoing changes to {file_name}",
        }
        return labels.get(command, f"Working on {file_name}")

    if tool_name == "file_manager" and args:
        command = args.get("command")
        file_name = _file_name(args.get("path"))
        new_path = args.get("new_path")
        new_file_name = new_path.split("/")[-1] if new_path else ""
        if command == "rename":
            return f"Renaming {file_name} to {new_file_name}"
        if command == "delete":
            return f"Deleting {file_name}"
        return f"Managing {file_name}"

    return f"Using {tool_name}"
