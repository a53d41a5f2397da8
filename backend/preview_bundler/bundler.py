"""
Preview Bundler
预览打包器

Turns the current contents of a VirtualFileTree into a module map the
sandboxed renderer can execute.

Pipeline:
1. Entry - find the well-known entry module (/App.jsx first)
2. Graph - depth-first walk of local imports with a visited set, so
   import cycles are allowed and every module is transformed once
3. Transform - JSX to createElement calls, local specifiers rewritten
   to resolved absolute paths, CSS imports pulled out into ``styles``
4. Assemble - modules keyed by path, external specifiers in first-seen
   order, plus every diagnostic found

Diagnostics are collected, never fail-fast: a broken module is reported
and the rest of the graph is still processed. The caller decides whether
a partial artifact is worth showing.
"""

from __future__ import annotations
import hashlib
import json
import logging
from collections import OrderedDict
from threading import Lock
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

import canvas_config as config
from virtual_fs import (
    EXTERNAL,
    ErrorKind,
    InvalidPath,
    ModuleNotFound,
    TransformError,
    VirtualFileTree,
    normalize,
    resolve_import,
)
from virtual_fs.paths import extension_of
from .transform import TransformOutput, transform_module

logger = logging.getLogger(__name__)


# ============================================
# Models
# ============================================

class Diagnostic(BaseModel):
    """A problem found while building the preview"""
    kind: str
    message: str
    path: Optional[str] = None
    importer: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


class PreviewArtifact(BaseModel):
    """What the execution sandbox consumes"""
    entry: str
    modules: Dict[str, str] = Field(default_factory=dict)       # path -> transformed source
    external_specifiers: List[str] = Field(default_factory=list)
    styles: Dict[str, str] = Field(default_factory=dict)        # path -> css
    graph: Dict[str, List[str]] = Field(default_factory=dict)   # path -> local dependencies


class BuildResult(BaseModel):
    success: bool
    artifact: Optional[PreviewArtifact] = None
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    def diagnostics_of(self, kind: ErrorKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind.value]


@dataclass
class ModuleRecord:
    path: str
    transformed_source: str
    import_specifiers: List[str] = field(default_factory=list)


# ============================================
# Transform cache
# ============================================

class TransformCache:
    """
    Content-hash cache of transform results.

    Purely a speed-up: a miss always re-transforms. Thread-safe so
    concurrent preview builds can share one instance.
    """

    def __init__(self, max_entries: int = config.TRANSFORM_CACHE_SIZE):
        self._entries: "OrderedDict[str, TransformOutput]" = OrderedDict()
        self._lock = Lock()
        self._max_entries = max_entries
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(path: str, source: str, pragma: str, fragment: str) -> str:
        digest = hashlib.sha256()
        for part in (path, pragma, fragment, source):
            digest.update(part.encode("utf-8"))
            digest.update(b"\0")
        return digest.hexdigest()

    def get(self, key: str) -> Optional[TransformOutput]:
        with self._lock:
            output = self._entries.get(key)
            if output is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return output

    def put(self, key: str, output: TransformOutput) -> None:
        if self._max_entries <= 0:
            return
        with self._lock:
            self._entries[key] = output
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = self.misses = 0


transform_cache = TransformCache()


# ============================================
# Bundler
# ============================================

class PreviewBundler:
    """One build over one tree"""

    def __init__(
        self,
        tree: VirtualFileTree,
        entry_points: Optional[Sequence[str]] = None,
        cache: Optional[TransformCache] = None,
        pragma: str = config.JSX_PRAGMA,
        fragment: str = config.JSX_FRAGMENT,
    ):
        self.tree = tree
        self.entry_points = list(entry_points or config.ENTRY_POINTS)
        self.cache = cache
        self.pragma = pragma
        self.fragment = fragment

        self.diagnostics: List[Diagnostic] = []
        self.records: Dict[str, ModuleRecord] = {}

    def find_entry(self) -> Optional[str]:
        for candidate in self.entry_points:
            path = normalize(candidate)
            if self.tree.is_file(path):
                return path
        return None

    def build(self) -> BuildResult:
        entry = self.find_entry()
        if entry is None:
            message = f"No entry module found. Create {self.entry_points[0]} exporting a default component."
            logger.warning(f"[Bundler] {message}")
            return BuildResult(
                success=False,
                diagnostics=[Diagnostic(
                    kind=ErrorKind.MISSING_ENTRY_POINT.value,
                    message=message,
                    path=self.entry_points[0],
                )],
            )

        artifact = PreviewArtifact(entry=entry)
        visited = set()
        stack = [entry]

        while stack:
            path = stack.pop()
            if path in visited:
                continue
            visited.add(path)

            dependencies = self._process(path, artifact)
            artifact.graph[path] = dependencies
            # Reverse so the first import is visited first
            for dependency in reversed(dependencies):
                if dependency not in visited:
                    stack.append(dependency)

        for path in list(artifact.graph):
            if path in artifact.styles:
                del artifact.graph[path]

        result = BuildResult(
            success=not self.diagnostics,
            artifact=artifact,
            diagnostics=self.diagnostics,
        )
        logger.info(
            f"[Bundler] Built preview from {entry}: {len(artifact.modules)} module(s), "
            f"{len(artifact.external_specifiers)} external(s), {len(self.diagnostics)} diagnostic(s)"
        )
        return result

    # ============================================
    # Per-module processing
    # ============================================

    def _process(self, path: str, artifact: PreviewArtifact) -> List[str]:
        """Transform one module; returns its local dependencies in import order"""
        source = self.tree.read_file(path)
        extension = extension_of(path)

        if extension == ".css":
            artifact.styles[path] = source
            return []

        if extension == ".json":
            try:
                json.loads(source)
            except ValueError as e:
                self._diagnose(TransformError(f"{path}: invalid JSON: {e}", path=path))
                return []
            artifact.modules[path] = f"export default {source.strip()};\n"
            self.records[path] = ModuleRecord(path, artifact.modules[path])
            return []

        try:
            output = self._transform(path, source)
        except TransformError as e:
            self._diagnose(e)
            return []

        rewrites: Dict[int, str] = {}
        removals = set()
        dependencies: List[str] = []

        for index, ref in enumerate(output.imports):
            try:
                target = resolve_import(path, ref.specifier, self.tree.is_file)
            except ModuleNotFound as e:
                self._diagnose(e, importer=path, line=ref.line)
                continue
            except InvalidPath as e:
                self._diagnose(
                    ModuleNotFound(f"Cannot resolve '{ref.specifier}' imported from {path}: {e.message}", path=e.path),
                    importer=path,
                    line=ref.line,
                )
                continue

            if target is EXTERNAL:
                if ref.specifier not in artifact.external_specifiers:
                    artifact.external_specifiers.append(ref.specifier)
                continue

            if extension_of(target) == ".css" and ref.kind != "dynamic":
                removals.add(index)
            else:
                rewrites[index] = target
            if target not in dependencies:
                dependencies.append(target)

        code = output.render(rewrites, removals)
        artifact.modules[path] = code
        self.records[path] = ModuleRecord(path, code, [ref.specifier for ref in output.imports])
        return dependencies

    def _transform(self, path: str, source: str) -> TransformOutput:
        if self.cache is None:
            return transform_module(source, path, self.pragma, self.fragment)

        key = self.cache.key(path, source, self.pragma, self.fragment)
        output = self.cache.get(key)
        if output is None:
            output = transform_module(source, path, self.pragma, self.fragment)
            self.cache.put(key, output)
        return output

    def _diagnose(
        self,
        error,
        importer: Optional[str] = None,
        line: Optional[int] = None,
    ) -> None:
        diagnostic = Diagnostic(
            kind=error.kind.value,
            message=error.message,
            path=error.path,
            importer=importer,
            line=getattr(error, "line", None) or line,
            column=getattr(error, "column", None),
        )
        logger.warning(f"[Bundler] {diagnostic.kind}: {diagnostic.message}")
        self.diagnostics.append(diagnostic)


def build_preview(
    tree: VirtualFileTree,
    entry_points: Optional[Sequence[str]] = None,
    cache: Optional[TransformCache] = transform_cache,
) -> BuildResult:
    """
    Build the preview artifact for a tree.

    Returns:
        BuildResult; ``success`` is False when any diagnostic was found,
        in which case ``artifact`` (if the entry exists) holds the partial
        module map.
    """
    return PreviewBundler(tree, entry_points=entry_points, cache=cache).build()


def build_import_map(artifact: PreviewArtifact, cdn_url: str = config.ESM_CDN_URL) -> dict:
    """
    Import map for the sandbox: external specifiers point at an ESM CDN,
    local modules are listed under their own paths for the sandbox to
    replace with blob URLs.
    """
    base = cdn_url if cdn_url.endswith("/") else cdn_url + "/"
    imports = {specifier: f"{base}{specifier}" for specifier in artifact.external_specifiers}
    for path in artifact.modules:
        imports.setdefault(path, path)
    return {"imports": imports}
