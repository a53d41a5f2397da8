"""
Project Session API Routes
项目会话 API 路由

HTTP boundary for the model loop, the persistence layer and the preview
sandbox:
- POST   /api/projects                 - Create a session (optionally from a snapshot)
- GET    /api/projects                 - List live sessions
- GET    /api/projects/tools           - Tool definitions for the model loop
- POST   /api/projects/{id}/tools      - Apply a turn's tool calls in order
- GET    /api/projects/{id}/files      - Walk the file tree
- GET    /api/projects/{id}/snapshot   - Flat snapshot for storage
- GET    /api/projects/{id}/preview    - Build the preview artifact
- DELETE /api/projects/{id}            - Drop a session
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import Dict, Any, Optional, List

from editor_tools import ToolCallRequest, ToolResult, describe_tool_call, get_tool_definitions
from preview_bundler import BuildResult, build_import_map
from virtual_fs import AlreadyExists, CorruptSnapshot

from .store import ProjectSession, project_sessions

router = APIRouter(prefix="/api/projects", tags=["projects"])


# ============================================
# Request/Response Models
# ============================================

class CreateProjectRequest(BaseModel):
    """Request model for creating a session"""
    snapshot: Optional[Dict[str, Any]] = Field(None, description="Snapshot to restore")
    session_id: Optional[str] = Field(None, description="Explicit session ID (optional)")

class CreateProjectResponse(BaseModel):
    success: bool
    id: str
    file_count: int

class ApplyToolsRequest(BaseModel):
    """One turn's tool calls, applied strictly in order"""
    calls: List[ToolCallRequest] = Field(..., description="Tool calls from the model")

class AppliedToolCall(BaseModel):
    tool: str
    label: str
    result: ToolResult

class ApplyToolsResponse(BaseModel):
    success: bool
    results: List[AppliedToolCall]

class FileEntry(BaseModel):
    path: str
    type: str

class FileListResponse(BaseModel):
    success: bool
    count: int
    items: List[FileEntry]

class PreviewResponse(BaseModel):
    build: BuildResult
    import_map: Optional[Dict[str, Any]] = None


def _get_session(session_id: str) -> ProjectSession:
    session = project_sessions.get(session_id)
    if not session:
        raise HTTPException(
            status_code=404,
            detail=f"Project session '{session_id}' not found or expired"
        )
    return session


# ============================================
# API Endpoints
# ============================================

@router.post("", response_model=CreateProjectResponse)
async def create_project(request: CreateProjectRequest):
    """
    Create a project session
    创建项目会话

    A snapshot, when given, must be consistent; a corrupt snapshot is
    rejected and no session is created.
    """
    try:
        session = project_sessions.create(
            snapshot=request.snapshot,
            session_id=request.session_id,
        )
    except CorruptSnapshot as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    except AlreadyExists as e:
        raise HTTPException(status_code=409, detail=e.to_dict())

    return CreateProjectResponse(
        success=True,
        id=session.id,
        file_count=session.tree.file_count,
    )


@router.get("")
async def list_projects():
    sessions = project_sessions.list_all()
    return {
        "success": True,
        "count": len(sessions),
        "items": [s.to_summary() for s in sessions],
    }


@router.get("/tools")
async def list_tools():
    """Tool definitions in Claude API format"""
    return {"tools": get_tool_definitions()}


@router.post("/{session_id}/tools", response_model=ApplyToolsResponse)
async def apply_tools(session_id: str, request: ApplyToolsRequest):
    """
    Apply tool calls
    执行工具调用

    Every call gets its own result; a failed call leaves the tree unchanged
    and later calls still run against the state earlier ones left.
    """
    session = _get_session(session_id)
    results = session.apply_tool_calls(request.calls)
    return ApplyToolsResponse(
        success=all(r.ok for r in results),
        results=[
            AppliedToolCall(
                tool=call.tool,
                label=describe_tool_call(call.tool, call.args),
                result=result,
            )
            for call, result in zip(request.calls, results)
        ],
    )


@router.get("/{session_id}/files", response_model=FileListResponse)
async def list_files(session_id: str):
    session = _get_session(session_id)
    with session.lock:
        items = [
            FileEntry(path=path, type=kind.value)
            for path, kind in session.tree.walk()
        ]
    return FileListResponse(success=True, count=len(items), items=items)


@router.get("/{session_id}/snapshot")
async def get_snapshot(session_id: str):
    """
    Flat snapshot of the tree
    获取文件树快照
    """
    session = _get_session(session_id)
    return {"success": True, "id": session_id, "snapshot": session.snapshot()}


@router.get("/{session_id}/preview", response_model=PreviewResponse)
async def get_preview(session_id: str):
    """
    Build the preview artifact
    构建预览

    Always 200: a failed build is reported through its diagnostics, with
    whatever partial module map could be produced.
    """
    session = _get_session(session_id)
    build = session.preview()
    import_map = build_import_map(build.artifact) if build.artifact else None
    return PreviewResponse(build=build, import_map=import_map)


@router.delete("/{session_id}")
async def delete_project(session_id: str):
    if project_sessions.delete(session_id):
        return {
            "success": True,
            "message": f"Deleted project session: {session_id}",
        }
    raise HTTPException(
        status_code=404,
        detail=f"Project session '{session_id}' not found"
    )
