"""
Virtual Path Utilities
虚拟路径工具

All paths inside the virtual tree are absolute, posix-style and normalized:
- always start with "/"
- no "." / ".." segments, no empty segments, no trailing "/"
- never escape above the root

Import specifiers are resolved against the tree with a fixed extension
priority: literal path, then RESOLVE_EXTENSIONS, then an ``index`` file
inside a directory of that name.
"""

from __future__ import annotations
from typing import Callable, Optional, List

import canvas_config as config
from .errors import InvalidPath, ModuleNotFound

ROOT = "/"


class _External:
    """Sentinel returned for specifiers the sandbox must resolve"""

    def __repr__(self) -> str:
        return "EXTERNAL"

    def __bool__(self) -> bool:
        return False


EXTERNAL = _External()


def normalize(path: str) -> str:
    """
    Normalize a virtual path.

    Relative paths are taken relative to the root, so "App.jsx" and
    "/App.jsx" denote the same file.

    Raises:
        InvalidPath: empty path, forbidden characters, surrounding
            whitespace, or ".." above root
    """
    if not isinstance(path, str) or not path.strip():
        raise InvalidPath("Path must be a non-empty string", path=str(path))
    if "\x00" in path or "\\" in path:
        raise InvalidPath(f"Path contains forbidden characters: {path!r}", path=path)
    if path != path.strip():
        raise InvalidPath(f"Path has leading or trailing whitespace: {path!r}", path=path)

    parts: List[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise InvalidPath(f"Path escapes the root: {path}", path=path)
            parts.pop()
            continue
        parts.append(segment)

    return "/" + "/".join(parts)


def parent_of(path: str) -> str:
    """Parent directory of a normalized path (root is its own parent)"""
    if path == ROOT:
        return ROOT
    head = path.rsplit("/", 1)[0]
    return head or ROOT


def basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def is_descendant(path: str, ancestor: str) -> bool:
    """True if ``path`` lies strictly inside ``ancestor``"""
    if ancestor == ROOT:
        return path != ROOT
    return path.startswith(ancestor + "/")


def extension_of(path: str) -> str:
    name = basename(path)
    if "." not in name.lstrip("."):
        return ""
    return "." + name.rsplit(".", 1)[-1].lower()


def resolve_specifier_path(from_path: str, specifier: str) -> Optional[str]:
    """
    Turn a specifier into an absolute (unchecked) path.

    Returns None for external package references.
    """
    if specifier.startswith(config.IMPORT_ALIAS):
        return normalize(specifier[len(config.IMPORT_ALIAS):])
    if specifier.startswith("/"):
        return normalize(specifier)
    if specifier in (".", "..") or specifier.startswith("./") or specifier.startswith("../"):
        return normalize(parent_of(from_path) + "/" + specifier)
    return None


def resolve_import(
    from_path: str,
    specifier: str,
    is_file: Callable[[str], bool],
):
    """
    Resolve an import specifier found in ``from_path``.

    Args:
        from_path: Normalized path of the importing module
        specifier: The string inside the import statement
        is_file: Predicate telling whether a path is a file in the tree

    Returns:
        Normalized path of the target file, or EXTERNAL

    Raises:
        InvalidPath: the specifier climbs above the root
        ModuleNotFound: a local specifier matched no candidate
    """
    base = resolve_specifier_path(from_path, specifier)
    if base is None:
        return EXTERNAL

    for candidate in _candidates(base):
        if is_file(candidate):
            return candidate

    raise ModuleNotFound(
        f"Cannot resolve '{specifier}' imported from {from_path}: "
        f"no file matches {base}",
        path=base,
    )


def _candidates(base: str) -> List[str]:
    candidates = [base]
    candidates.extend(base + ext for ext in config.RESOLVE_EXTENSIONS)
    index_base = "/index" if base == ROOT else base + "/index"
    candidates.extend(index_base + ext for ext in config.RESOLVE_EXTENSIONS)
    return candidates
