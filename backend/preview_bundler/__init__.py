"""
Preview Bundler Module

Transforms the virtual file tree into an executable module map for the
sandboxed preview renderer.
"""

from .transform import ImportRef, ModuleTransformer, TransformOutput, transform_module
from .bundler import (
    BuildResult,
    Diagnostic,
    ModuleRecord,
    PreviewArtifact,
    PreviewBundler,
    TransformCache,
    build_import_map,
    build_preview,
    transform_cache,
)

__all__ = [
    "ImportRef",
    "ModuleTransformer",
    "TransformOutput",
    "transform_module",
    "BuildResult",
    "Diagnostic",
    "ModuleRecord",
    "PreviewArtifact",
    "PreviewBundler",
    "TransformCache",
    "build_import_map",
    "build_preview",
    "transform_cache",
]
