"""
Component Canvas 测试配置文件

Shared pytest fixtures and assertion helpers.

Key fixtures:
- tree:                 empty VirtualFileTree
- executor:             ToolExecutor over an empty tree
- executor_with_files:  ToolExecutor over a small component project
- store:                isolated ProjectSessionStore
"""

import pytest
import sys
from pathlib import Path

# 添加 backend 目录到 Python 路径
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from virtual_fs import VirtualFileTree
from editor_tools import ToolExecutor
from preview_bundler import TransformCache
from project_sessions import ProjectSessionStore


# ============================================
# Tree / executor fixtures
# ============================================

@pytest.fixture
def tree():
    return VirtualFileTree()


@pytest.fixture
def executor():
    return ToolExecutor()


@pytest.fixture
def executor_with_files(executor):
    """
    Executor over a small project:
    - /App.jsx: imports Button through the alias
    - /components/Button.jsx
    - /lib/utils.js: three lines
    """
    executor.tree.write_file("/App.jsx", """
import Button from '@/components/Button';

export default function App() {
  return <Button label="Go" />;
}
""".lstrip())
    executor.tree.write_file("/components/Button.jsx", """
export default function Button({ label }) {
  return <button className="btn">{label}</button>;
}
""".lstrip())
    executor.tree.write_file("/lib/utils.js", "export const a = 1;\nexport const b = 2;\nexport const c = 3;")
    return executor


@pytest.fixture
def cache():
    return TransformCache(max_entries=16)


@pytest.fixture
def store():
    return ProjectSessionStore(max_entries=3, default_ttl=3600)


# ============================================
# Helper Functions
# ============================================

def editor(executor, command, path, **kwargs):
    """Run one str_replace_editor call"""
    return executor.execute("str_replace_editor", {"command": command, "path": path, **kwargs})


def file_manager(executor, command, path, **kwargs):
    """Run one file_manager call"""
    return executor.execute("file_manager", {"command": command, "path": path, **kwargs})


def assert_tool_success(result):
    """
    断言工具执行成功。
    """
    assert result.ok, f"Tool failed: {result.error_kind}: {result.error}"


def assert_tool_failure(result, error_kind=None):
    """
    断言工具执行失败。

    使用方式：
    ```python
    result = editor(executor, "undo_edit", "/nothing.jsx")
    assert_tool_failure(result, "NoHistory")
    ```
    """
    assert not result.ok, f"Tool should have failed but succeeded: {result.summary}"
    if error_kind:
        assert result.error_kind == error_kind, \
            f"Expected error kind '{error_kind}', got: {result.error_kind} ({result.error})"
