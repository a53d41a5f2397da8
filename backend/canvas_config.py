"""
Component Canvas Configuration
组件画布配置

Environment-driven settings for the virtual file system, the editor tools,
the preview bundler and the session store.

All values are read once at import time. Changing the environment after the
process started has no effect.
"""

import os


def _split_list(raw: str) -> list:
    return [item.strip() for item in raw.split(",") if item.strip()]


# ============================================
# Import resolution
# ============================================

# Reserved import prefix meaning "relative to the tree root"
IMPORT_ALIAS = os.getenv("CANVAS_IMPORT_ALIAS", "@/")

# Extensions tried (in order) when an import specifier has none
RESOLVE_EXTENSIONS = _split_list(
    os.getenv("CANVAS_RESOLVE_EXTENSIONS", ".jsx,.js,.tsx,.ts")
)

# ============================================
# Bundler
# ============================================

# Entry modules; the first one present in the tree wins
ENTRY_POINTS = _split_list(
    os.getenv(
        "CANVAS_ENTRY_POINTS",
        "/App.jsx,/App.tsx,/App.js,/index.jsx,/index.tsx,/index.js",
    )
)

JSX_PRAGMA = os.getenv("CANVAS_JSX_PRAGMA", "React.createElement")
JSX_FRAGMENT = os.getenv("CANVAS_JSX_FRAGMENT", "React.Fragment")

# Where the sandbox fetches external packages from
ESM_CDN_URL = os.getenv("CANVAS_ESM_CDN_URL", "https://esm.sh/")

# Number of transformed modules kept in the content-hash cache (0 disables)
TRANSFORM_CACHE_SIZE = int(os.getenv("CANVAS_TRANSFORM_CACHE_SIZE", "256"))

# ============================================
# Sessions
# ============================================

SESSION_MAX_ENTRIES = int(os.getenv("CANVAS_SESSION_MAX_ENTRIES", "100"))
SESSION_TTL_SECONDS = float(os.getenv("CANVAS_SESSION_TTL_SECONDS", "86400"))
