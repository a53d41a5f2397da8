"""
编辑工具测试

str_replace_editor and file_manager commands applied through ToolExecutor.

测试命名规则：
- test_<command>_<scenario>

运行测试：
    cd backend
    pytest tests/test_editor_tools.py -v
"""

import pytest

from editor_tools import (
    ToolCallRequest,
    ToolExecutor,
    describe_tool_call,
    get_tool_definitions,
)
from virtual_fs import to_snapshot
from conftest import editor, file_manager, assert_tool_success, assert_tool_failure


# ============================================
# 1. view
# ============================================

class TestView:

    def test_view_file_with_line_numbers(self, executor_with_files):
        result = editor(executor_with_files, "view", "/lib/utils.js")

        assert_tool_success(result)
        assert result.data["line_count"] == 3
        assert "     1|export const a = 1;" in result.data["numbered"]
        assert result.data["content"].startswith("export const a")

    def test_view_range(self, executor_with_files):
        result = editor(executor_with_files, "view", "/lib/utils.js", view_range=[2, -1])

        assert_tool_success(result)
        assert result.data["numbered"].splitlines() == [
            "     2|export const b = 2;",
            "     3|export const c = 3;",
        ]

    def test_view_range_out_of_bounds(self, executor_with_files):
        result = editor(executor_with_files, "view", "/lib/utils.js", view_range=[2, 10])
        assert_tool_failure(result, "InvalidRange")

    def test_view_directory(self, executor_with_files):
        result = editor(executor_with_files, "view", "/")

        assert_tool_success(result)
        assert result.data["kind"] == "directory"
        assert "components/" in result.data["listing"]

    def test_view_missing(self, executor):
        assert_tool_failure(editor(executor, "view", "/nope.jsx"), "NotFound")

    def test_view_does_not_mutate(self, executor_with_files):
        before = to_snapshot(executor_with_files.tree)
        editor(executor_with_files, "view", "/App.jsx")
        assert to_snapshot(executor_with_files.tree) == before


# ============================================
# 2. create
# ============================================

class TestCreate:

    def test_create_file(self, executor):
        result = editor(executor, "create", "/components/Card.jsx", file_text="export default 1;")

        assert_tool_success(result)
        assert executor.tree.read_file("/components/Card.jsx") == "export default 1;"
        assert executor.tree.is_directory("/components")

    def test_create_existing_file_fails(self, executor_with_files):
        original = executor_with_files.tree.read_file("/App.jsx")
        result = editor(executor_with_files, "create", "/App.jsx", file_text="X")

        assert_tool_failure(result, "AlreadyExists")
        assert executor_with_files.tree.read_file("/App.jsx") == original

    def test_create_over_directory_fails(self, executor_with_files):
        result = editor(executor_with_files, "create", "/components", file_text="X")
        assert_tool_failure(result, "InvalidOperation")

    def test_undo_create_deletes_file(self, executor):
        """Undoing a create is a deletion, not a content restore"""
        assert_tool_success(editor(executor, "create", "/App.jsx", file_text="X"))

        result = editor(executor, "undo_edit", "/App.jsx")

        assert_tool_success(result)
        assert not executor.tree.exists("/App.jsx")
        assert result.data["new_content"] is None

    def test_create_invalid_path(self, executor):
        result = editor(executor, "create", "/../outside.js", file_text="X")
        assert_tool_failure(result, "InvalidPath")


# ============================================
# 3. str_replace
# ============================================

class TestStrReplace:

    def test_replace_unique_match_and_undo(self, executor_with_files):
        original = executor_with_files.tree.read_file("/components/Button.jsx")

        result = editor(
            executor_with_files, "str_replace", "/components/Button.jsx",
            old_str='className="btn"', new_str='className="btn btn-primary"',
        )

        assert_tool_success(result)
        updated = executor_with_files.tree.read_file("/components/Button.jsx")
        assert 'className="btn btn-primary"' in updated
        assert result.data["old_content"] == original
        assert result.data["new_content"] == updated

        assert_tool_success(editor(executor_with_files, "undo_edit", "/components/Button.jsx"))
        assert executor_with_files.tree.read_file("/components/Button.jsx") == original

    def test_ambiguous_match_leaves_content_unchanged(self, executor):
        editor(executor, "create", "/a.js", file_text="foo();\nbar();\nfoo();\n")

        result = editor(executor, "str_replace", "/a.js", old_str="foo();", new_str="baz();")

        assert_tool_failure(result, "AmbiguousMatch")
        assert "[1, 3]" in result.error
        assert executor.tree.read_file("/a.js") == "foo();\nbar();\nfoo();\n"

    def test_overlapping_matches_are_ambiguous(self, executor):
        editor(executor, "create", "/a.js", file_text="aaa")

        result = editor(executor, "str_replace", "/a.js", old_str="aa", new_str="X")

        assert_tool_failure(result, "AmbiguousMatch")
        assert "Found 2 occurrences" in result.error
        assert executor.tree.read_file("/a.js") == "aaa"

    def test_text_not_found(self, executor_with_files):
        result = editor(executor_with_files, "str_replace", "/App.jsx", old_str="nothing here", new_str="x")
        assert_tool_failure(result, "TextNotFound")

    def test_missing_file(self, executor):
        result = editor(executor, "str_replace", "/nope.js", old_str="a", new_str="b")
        assert_tool_failure(result, "NotFound")

    def test_failed_replace_records_no_history(self, executor):
        editor(executor, "create", "/a.js", file_text="x x")
        editor(executor, "str_replace", "/a.js", old_str="x", new_str="y")

        assert executor.history.depth("/a.js") == 1

    def test_empty_new_str_deletes_text(self, executor):
        editor(executor, "create", "/a.js", file_text="keep; drop;")
        assert_tool_success(editor(executor, "str_replace", "/a.js", old_str=" drop;", new_str=""))
        assert executor.tree.read_file("/a.js") == "keep;"


# ============================================
# 4. insert
# ============================================

class TestInsert:

    def test_insert_at_top(self, executor_with_files):
        result = editor(executor_with_files, "insert", "/lib/utils.js", insert_line=0, new_str="// top")

        assert_tool_success(result)
        assert executor_with_files.tree.read_file("/lib/utils.js") == (
            "// top\nexport const a = 1;\nexport const b = 2;\nexport const c = 3;"
        )

    def test_insert_after_last_line(self, executor_with_files):
        editor(executor_with_files, "insert", "/lib/utils.js", insert_line=3, new_str="export const d = 4;")
        assert executor_with_files.tree.read_file("/lib/utils.js").endswith("c = 3;\nexport const d = 4;")

    def test_insert_multiple_lines_preserves_trailing_newline(self, executor):
        editor(executor, "create", "/a.js", file_text="a\nb\n")

        editor(executor, "insert", "/a.js", insert_line=1, new_str="x\ny\n")

        assert executor.tree.read_file("/a.js") == "a\nx\ny\nb\n"

    def test_insert_beyond_end(self, executor_with_files):
        before = executor_with_files.tree.read_file("/lib/utils.js")
        result = editor(executor_with_files, "insert", "/lib/utils.js", insert_line=4, new_str="x")

        assert_tool_failure(result, "InvalidRange")
        assert executor_with_files.tree.read_file("/lib/utils.js") == before

    def test_insert_into_empty_file(self, executor):
        editor(executor, "create", "/a.js", file_text="")
        editor(executor, "insert", "/a.js", insert_line=0, new_str="first")
        assert executor.tree.read_file("/a.js") == "first"

    def test_insert_then_undo(self, executor_with_files):
        before = executor_with_files.tree.read_file("/lib/utils.js")
        editor(executor_with_files, "insert", "/lib/utils.js", insert_line=1, new_str="x")
        editor(executor_with_files, "undo_edit", "/lib/utils.js")
        assert executor_with_files.tree.read_file("/lib/utils.js") == before


# ============================================
# 5. undo_edit
# ============================================

class TestUndoEdit:

    def test_no_history(self, executor_with_files):
        # files written directly to the tree have no history
        assert_tool_failure(editor(executor_with_files, "undo_edit", "/App.jsx"), "NoHistory")

    def test_undo_is_a_stack(self, executor):
        editor(executor, "create", "/a.js", file_text="v1")
        editor(executor, "str_replace", "/a.js", old_str="v1", new_str="v2")
        editor(executor, "str_replace", "/a.js", old_str="v2", new_str="v3")

        editor(executor, "undo_edit", "/a.js")
        assert executor.tree.read_file("/a.js") == "v2"
        editor(executor, "undo_edit", "/a.js")
        assert executor.tree.read_file("/a.js") == "v1"
        editor(executor, "undo_edit", "/a.js")
        assert not executor.tree.exists("/a.js")
        assert_tool_failure(editor(executor, "undo_edit", "/a.js"), "NoHistory")

    def test_history_is_per_file(self, executor):
        editor(executor, "create", "/a.js", file_text="a")
        editor(executor, "create", "/b.js", file_text="b")
        editor(executor, "str_replace", "/b.js", old_str="b", new_str="B")

        editor(executor, "undo_edit", "/a.js")

        assert not executor.tree.exists("/a.js")
        assert executor.tree.read_file("/b.js") == "B"


# ============================================
# 6. file_manager
# ============================================

class TestFileManager:

    def test_rename_file(self, executor_with_files):
        result = file_manager(executor_with_files, "rename", "/lib/utils.js", new_path="/lib/helpers.js")

        assert_tool_success(result)
        assert result.data["old_path"] == "/lib/utils.js"
        assert result.data["new_path"] == "/lib/helpers.js"
        assert executor_with_files.tree.exists("/lib/helpers.js")
        assert not executor_with_files.tree.exists("/lib/utils.js")

    def test_rename_into_new_directory(self, executor):
        editor(executor, "create", "/old.jsx", file_text="x")
        assert_tool_success(file_manager(executor, "rename", "/old.jsx", new_path="/new/old.jsx"))
        assert executor.tree.is_directory("/new")

    def test_rename_history_follows_file(self, executor):
        editor(executor, "create", "/a.jsx", file_text="one")
        editor(executor, "str_replace", "/a.jsx", old_str="one", new_str="two")
        file_manager(executor, "rename", "/a.jsx", new_path="/b.jsx")

        assert_tool_success(editor(executor, "undo_edit", "/b.jsx"))
        assert executor.tree.read_file("/b.jsx") == "one"
        assert_tool_failure(editor(executor, "undo_edit", "/a.jsx"), "NoHistory")

    def test_rename_failures(self, executor_with_files):
        before = to_snapshot(executor_with_files.tree)

        assert_tool_failure(
            file_manager(executor_with_files, "rename", "/App.jsx", new_path="/lib/utils.js"), "AlreadyExists")
        assert_tool_failure(
            file_manager(executor_with_files, "rename", "/missing.jsx", new_path="/x.jsx"), "NotFound")
        assert_tool_failure(
            file_manager(executor_with_files, "rename", "/lib", new_path="/lib/inner"), "InvalidOperation")

        assert to_snapshot(executor_with_files.tree) == before

    def test_delete_directory(self, executor_with_files):
        result = file_manager(executor_with_files, "delete", "/components")

        assert_tool_success(result)
        assert "/components/Button.jsx" in result.data["removed"]
        assert not executor_with_files.tree.exists("/components/Button.jsx")

    def test_delete_discards_history(self, executor):
        editor(executor, "create", "/a.jsx", file_text="x")
        editor(executor, "str_replace", "/a.jsx", old_str="x", new_str="y")
        file_manager(executor, "delete", "/a.jsx")

        assert_tool_failure(editor(executor, "undo_edit", "/a.jsx"), "NoHistory")
        assert not executor.tree.exists("/a.jsx")

    def test_delete_root_fails(self, executor):
        assert_tool_failure(file_manager(executor, "delete", "/"), "InvalidOperation")


# ============================================
# 7. Malformed calls
# ============================================

class TestMalformedCalls:

    def test_unknown_tool(self, executor):
        result = executor.execute("shell", {"command": "ls"})
        assert_tool_failure(result, "InvalidCommand")

    def test_unknown_command(self, executor):
        result = executor.execute("str_replace_editor", {"command": "format", "path": "/a.js"})
        assert_tool_failure(result, "InvalidCommand")

    def test_missing_field(self, executor):
        result = executor.execute("str_replace_editor", {"command": "str_replace", "path": "/a.js"})
        assert_tool_failure(result, "InvalidCommand")
        assert "old_str" in result.error

    def test_negative_insert_line(self, executor):
        result = executor.execute(
            "str_replace_editor", {"command": "insert", "path": "/a.js", "insert_line": -1, "new_str": "x"})
        assert_tool_failure(result, "InvalidCommand")

    def test_args_not_an_object(self, executor):
        assert_tool_failure(executor.execute("file_manager", ["delete"]), "InvalidCommand")


# ============================================
# 8. Sequencing and stats
# ============================================

class TestSequencing:

    def test_calls_apply_in_order(self, executor):
        results = executor.execute_many([
            ToolCallRequest(tool="str_replace_editor", args={"command": "create", "path": "/App.jsx", "file_text": "a"}),
            ToolCallRequest(tool="str_replace_editor", args={"command": "str_replace", "path": "/App.jsx", "old_str": "a", "new_str": "b"}),
            ToolCallRequest(tool="file_manager", args={"command": "delete", "path": "/missing"}),
            ToolCallRequest(tool="file_manager", args={"command": "rename", "path": "/App.jsx", "new_path": "/Main.jsx"}),
        ])

        assert [r.ok for r in results] == [True, True, False, True]
        assert executor.tree.read_file("/Main.jsx") == "b"
        assert executor.stats == {"executed": 4, "successful": 3, "failed": 1}

    def test_executor_shares_given_tree(self, tree):
        executor = ToolExecutor(tree=tree)
        editor(executor, "create", "/x.js", file_text="1")
        assert tree.read_file("/x.js") == "1"


# ============================================
# 9. Definitions and labels
# ============================================

class TestDefinitions:

    def test_tool_definitions(self):
        tools = {t["name"]: t for t in get_tool_definitions()}

        assert set(tools) == {"str_replace_editor", "file_manager"}
        editor_commands = tools["str_replace_editor"]["input_schema"]["properties"]["command"]["enum"]
        assert editor_commands == ["view", "create", "str_replace", "insert", "undo_edit"]
        assert tools["file_manager"]["input_schema"]["required"] == ["command", "path"]

    @pytest.mark.parametrize("tool, args, expected", [
        ("str_replace_editor", {"command": "create", "path": "/src/components/Button.tsx"}, "Creating Button.tsx"),
        ("str_replace_editor", {"command": "str_replace", "path": "/src/utils/helpers.js"}, "Editing helpers.js"),
        ("str_replace_editor", {"command": "view", "path": "/package.json"}, "Viewing package.json"),
        ("str_replace_editor", {"command": "insert", "path": "/src/App.tsx"}, "Adding content to App.tsx"),
        ("str_replace_editor", {"command": "undo_edit", "path": "/src/index.ts"}, "Undoing changes to index.ts"),
        ("str_replace_editor", {"command": "unknown", "path": "/src/test.js"}, "Working on test.js"),
        ("str_replace_editor", {"command": "create"}, "Creating file"),
        ("file_manager", {"command": "rename", "path": "/a/old.jsx", "new_path": "/b/new.jsx"}, "Renaming old.jsx to new.jsx"),
        ("file_manager", {"command": "delete", "path": "/components"}, "Deleting components"),
        ("file_manager", {"command": "chmod", "path": "/x.js"}, "Managing x.js"),
        ("web_search", {"query": "x"}, "Using web_search"),
        ("str_replace_editor", None, "Using str_replace_editor"),
    ])
    def test_describe_tool_call(self, tool, args, expected):
        assert describe_tool_call(tool, args) == expected
