"""
Project Sessions Module
项目会话模块

Owns one virtual file tree per project session and exposes the tool,
snapshot and preview interfaces over HTTP.
"""

from .store import ProjectSession, ProjectSessionStore, project_sessions
from .routes import router as projects_router

__all__ = [
    "ProjectSession",
    "ProjectSessionStore",
    "project_sessions",
    "projects_router",
]
