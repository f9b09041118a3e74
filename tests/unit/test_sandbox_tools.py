"""Tests for the environment-bound tools."""

import json

import pytest

from codevibe.tools import ToolRegistry
from codevibe.tools.sandbox import EditFileParams, apply_edit, format_size, sandbox_tools
from codevibe.types import ToolCall


@pytest.fixture
def registry(sandbox_service, sandbox):
    return ToolRegistry(sandbox_tools(sandbox_service, sandbox.id))


async def run(registry, ctx, name, **args):
    return await registry.execute(ToolCall(id="c1", name=name, arguments=json.dumps(args)), ctx)


class TestToolSet:
    def test_names(self, registry):
        assert set(registry.names()) == {
            "run_command", "write_file", "read_file", "edit_file",
            "list_files", "delete_path", "create_directory",
        }


class TestWriteRead:
    async def test_round_trip(self, registry, tool_ctx, sandbox_service, sandbox):
        content = "line one\nline two\n  indented\n"
        result = await run(registry, tool_ctx, "write_file", path="src/a/b.ts", content=content)
        assert result.success
        assert result.content == f"Successfully wrote {len(content)} characters to src/a/b.ts"
        assert await sandbox_service.read_file(sandbox.id, "src/a/b.ts") == content

        read = await run(registry, tool_ctx, "read_file", path="src/a/b.ts")
        assert read.success
        assert read.content.endswith("\n\n" + content)
        assert "(4 lines, 29 characters)" in read.content

    async def test_read_missing_is_error_result(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "read_file", path="missing.ts")
        assert result.success is False
        assert result.content.startswith("Error:")

    async def test_empty_path_fails_validation(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "write_file", path="", content="x")
        assert result.success is False
        assert "Validation error" in result.content


class TestEditFile:
    async def test_replace_text_changes_only_the_match(self, registry, tool_ctx, sandbox_service, sandbox):
        original = "const a = 1;\nconst title = 'Old';\nconst b = 2;\n"
        await sandbox_service.write_file(sandbox.id, "x.ts", original)
        result = await run(
            registry, tool_ctx, "edit_file",
            path="x.ts", operation="replace_text", search_text="'Old'", replace_text="'New'",
        )
        assert result.success
        assert "Replaced 1 occurrence" in result.content
        assert await sandbox_service.read_file(sandbox.id, "x.ts") == original.replace("'Old'", "'New'")

    async def test_replace_text_keeps_crlf_bytes(self, registry, tool_ctx, sandbox_service, sandbox):
        await sandbox_service.write_file(sandbox.id, "win.ts", "a\r\nfoo\r\nb\r\n")
        result = await run(
            registry, tool_ctx, "edit_file",
            path="win.ts", operation="replace_text", search_text="foo", replace_text="bar",
        )
        assert result.success
        assert await sandbox_service.read_file(sandbox.id, "win.ts") == "a\r\nbar\r\nb\r\n"

    async def test_replace_text_reports_count(self, registry, tool_ctx, sandbox_service, sandbox):
        await sandbox_service.write_file(sandbox.id, "x.ts", "a a a")
        result = await run(
            registry, tool_ctx, "edit_file",
            path="x.ts", operation="replace_text", search_text="a", replace_text="b",
        )
        assert "Replaced 3 occurrences" in result.content
        assert await sandbox_service.read_file(sandbox.id, "x.ts") == "b b b"

    async def test_replace_text_not_found(self, registry, tool_ctx, sandbox_service, sandbox):
        await sandbox_service.write_file(sandbox.id, "x.ts", "hello")
        result = await run(
            registry, tool_ctx, "edit_file",
            path="x.ts", operation="replace_text", search_text="bye", replace_text="hi",
        )
        assert result.success is False
        assert "not found" in result.content
        assert await sandbox_service.read_file(sandbox.id, "x.ts") == "hello"

    async def test_append_creates_missing_file(self, registry, tool_ctx, sandbox_service, sandbox):
        result = await run(
            registry, tool_ctx, "edit_file", path="notes.md", operation="append", content="hi"
        )
        assert result.success
        assert await sandbox_service.read_file(sandbox.id, "notes.md") == "hi"

    async def test_insert_on_missing_file_fails(self, registry, tool_ctx):
        result = await run(
            registry, tool_ctx, "edit_file",
            path="ghost.ts", operation="insert_at_line", line_number=1, content="x",
        )
        assert result.success is False
        assert "does not exist" in result.content

    async def test_missing_required_fields_fail_validation(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "edit_file", path="a.ts", operation="replace_line")
        assert result.success is False
        assert "Validation error" in result.content


class TestApplyEdit:
    def _params(self, **kw):
        return EditFileParams(path="f", **kw)

    def test_prepend(self):
        new, _ = apply_edit("b", self._params(operation="prepend", content="a"))
        assert new == "ab"

    def test_insert_at_line(self):
        new, _ = apply_edit("one\nthree", self._params(operation="insert_at_line", line_number=2, content="two"))
        assert new == "one\ntwo\nthree"

    def test_insert_after_last_line(self):
        new, _ = apply_edit("one", self._params(operation="insert_at_line", line_number=2, content="two"))
        assert new == "one\ntwo"

    def test_insert_out_of_range(self):
        with pytest.raises(ValueError):
            apply_edit("one", self._params(operation="insert_at_line", line_number=3, content="x"))

    def test_replace_line(self):
        new, _ = apply_edit("a\nb\nc", self._params(operation="replace_line", line_number=2, content="B"))
        assert new == "a\nB\nc"

    def test_replace_line_out_of_range(self):
        with pytest.raises(ValueError):
            apply_edit("a", self._params(operation="replace_line", line_number=2, content="x"))


class TestListDeleteMkdir:
    async def test_directories_first_then_lexicographic(self, registry, tool_ctx, sandbox_service, sandbox):
        for path in ("zeta.ts", "alpha.ts", "lib/x.ts", "app/page.tsx"):
            await sandbox_service.write_file(sandbox.id, path, "x")
        result = await run(registry, tool_ctx, "list_files")
        lines = result.content.splitlines()[1:]
        assert lines == [
            "[dir]  app/",
            "[dir]  lib/",
            "[file] alpha.ts (1 B)",
            "[file] zeta.ts (1 B)",
        ]

    async def test_empty_directory(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "list_files", path=".")
        assert result.content == "Directory . is empty"

    async def test_create_and_delete(self, registry, tool_ctx, sandbox_service, sandbox):
        assert (await run(registry, tool_ctx, "create_directory", path="components/ui")).success
        entries = await sandbox_service.list_dir(sandbox.id, "components")
        assert [e.name for e in entries] == ["ui"]

        assert (await run(registry, tool_ctx, "delete_path", path="components")).success
        assert await sandbox_service.list_dir(sandbox.id) == []

    async def test_delete_missing(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "delete_path", path="nothing")
        assert result.success is False


class TestRunCommand:
    async def test_stdout(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "run_command", command="echo hello")
        assert result.success
        assert result.content.strip() == "hello"

    async def test_no_output(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "run_command", command="true")
        assert result.content == "Command executed: true (no output)"

    async def test_non_zero_exit_is_error_result(self, registry, tool_ctx):
        result = await run(registry, tool_ctx, "run_command", command="echo bad >&2; exit 2")
        assert result.success is False
        assert "exit code 2" in result.content
        assert "bad" in result.content


class TestFormatSize:
    def test_units(self):
        assert format_size(0) == "0 B"
        assert format_size(512) == "512 B"
        assert format_size(2048) == "2 KB"
        assert format_size(1536) == "1.5 KB"
