"""
Environment-bound tools.

Built per run from a sandbox service and a live environment id; none of
these exist when the run has no environment.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from ..errors import CommandFailedError
from ..sandbox import FileEntry, SandboxService
from ..types import ToolContext, ToolDefinition
from .schema import PydanticSchema

EditOperation = Literal["append", "prepend", "insert_at_line", "replace_text", "replace_line"]


class WriteFileParams(BaseModel):
    path: str = Field(..., min_length=1, description='File path, e.g. "src/components/Button.tsx"')
    content: str = Field(..., description="The complete content to write to the file")


class ReadFileParams(BaseModel):
    path: str = Field(..., min_length=1, description='File path, e.g. "package.json"')


class EditFileParams(BaseModel):
    path: str = Field(..., min_length=1)
    operation: EditOperation
    content: str | None = Field(
        None, description="Content for append, prepend, insert_at_line or replace_line"
    )
    line_number: int | None = Field(None, ge=1, description="1-based line number")
    search_text: str | None = Field(None, description="Text to find for replace_text")
    replace_text: str | None = Field(None, description="Replacement for replace_text")

    @model_validator(mode="after")
    def _required_fields(self) -> EditFileParams:
        op = self.operation
        if op in ("insert_at_line", "replace_line") and (
            self.line_number is None or self.content is None
        ):
            raise ValueError(f"line_number and content are required for {op}")
        if op == "replace_text" and (not self.search_text or self.replace_text is None):
            raise ValueError("search_text and replace_text are required for replace_text")
        return self


class ListFilesParams(BaseModel):
    path: str = Field(".", description="Directory to list (defaults to the workspace root)")


class PathParams(BaseModel):
    path: str = Field(..., min_length=1)


class RunCommandParams(BaseModel):
    command: str = Field(..., min_length=1, description="The shell command to run")


def apply_edit(existing: str, params: EditFileParams) -> tuple[str, str]:
    """Apply one edit operation to ``existing``; returns (new content, description).

    Raises ``ValueError`` when the operation does not fit the current content.
    """
    op = params.operation
    if op == "append":
        added = params.content or ""
        return existing + added, f"Appended {len(added)} characters"
    if op == "prepend":
        added = params.content or ""
        return added + existing, f"Prepended {len(added)} characters"

    if op == "replace_text":
        count = existing.count(params.search_text)
        if count == 0:
            raise ValueError(f'Search text "{params.search_text}" not found in {params.path}')
        new = existing.replace(params.search_text, params.replace_text)
        return new, f'Replaced {count} occurrence{"s" if count != 1 else ""} of "{params.search_text}"'

    lines = existing.split("\n")
    if op == "insert_at_line":
        if params.line_number > len(lines) + 1:
            raise ValueError(
                f"Line number {params.line_number} is out of range (1-{len(lines) + 1})"
            )
        lines.insert(params.line_number - 1, params.content)
        return "\n".join(lines), f"Inserted content at line {params.line_number}"

    # replace_line
    if params.line_number > len(lines):
        raise ValueError(f"Line number {params.line_number} is out of range (1-{len(lines)})")
    lines[params.line_number - 1] = params.content
    return "\n".join(lines), f"Replaced line {params.line_number}"


def format_size(size: int) -> str:
    if size == 0:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}".replace(".0 ", " ")
        value /= 1024
    return f"{value:.1f} GB".replace(".0 ", " ")


def sort_entries(entries: list[FileEntry]) -> list[FileEntry]:
    """Directories before files, each group lexicographic."""
    return sorted(entries, key=lambda e: (not e.is_dir, e.name))


def sandbox_tools(service: SandboxService, sandbox_id: str) -> list[ToolDefinition]:
    async def _write(params: WriteFileParams, ctx: ToolContext) -> str:
        await service.write_file(sandbox_id, params.path, params.content)
        return f"Successfully wrote {len(params.content)} characters to {params.path}"

    async def _read(params: ReadFileParams, ctx: ToolContext) -> str:
        content = await service.read_file(sandbox_id, params.path)
        n_lines = len(content.split("\n"))
        return f"Content of {params.path} ({n_lines} lines, {len(content)} characters):\n\n{content}"

    async def _edit(params: EditFileParams, ctx: ToolContext) -> str:
        try:
            existing = await service.read_file(sandbox_id, params.path)
        except FileNotFoundError:
            if params.operation not in ("append", "prepend"):
                raise FileNotFoundError(
                    f"File {params.path} does not exist. Use write_file to create it first."
                ) from None
            existing = ""
        new_content, description = apply_edit(existing, params)
        await service.write_file(sandbox_id, params.path, new_content)
        return f"{description} in {params.path}. File now has {len(new_content)} characters."

    async def _list(params: ListFilesParams, ctx: ToolContext) -> str:
        entries = sort_entries(await service.list_dir(sandbox_id, params.path))
        if not entries:
            return f"Directory {params.path} is empty"
        lines = [
            f"[dir]  {e.name}/" if e.is_dir else f"[file] {e.name} ({format_size(e.size)})"
            for e in entries
        ]
        return f"Contents of {params.path}:\n" + "\n".join(lines)

    async def _delete(params: PathParams, ctx: ToolContext) -> str:
        await service.remove(sandbox_id, params.path)
        return f"Successfully deleted {params.path}"

    async def _mkdir(params: PathParams, ctx: ToolContext) -> str:
        await service.make_dir(sandbox_id, params.path)
        return f"Successfully created directory {params.path}"

    async def _run(params: RunCommandParams, ctx: ToolContext) -> str:
        result = await service.run_command(sandbox_id, params.command)
        if result.exit_code != 0:
            raise CommandFailedError(params.command, result.exit_code, result.stderr)
        return result.stdout or f"Command executed: {params.command} (no output)"

    return [
        ToolDefinition(
            name="run_command",
            description="Run a shell command in the sandbox and return its output.",
            parameters=PydanticSchema(RunCommandParams),
            execute=_run,
        ),
        ToolDefinition(
            name="write_file",
            description=(
                "Create or completely overwrite a file with the specified content. "
                "Parent directories are created automatically."
            ),
            parameters=PydanticSchema(WriteFileParams),
            execute=_write,
        ),
        ToolDefinition(
            name="read_file",
            description="Read the complete contents of a file from the sandbox.",
            parameters=PydanticSchema(ReadFileParams),
            execute=_read,
        ),
        ToolDefinition(
            name="edit_file",
            description=(
                "Edit an existing file: append, prepend, insert_at_line, replace_text "
                "or replace_line."
            ),
            parameters=PydanticSchema(EditFileParams),
            execute=_edit,
        ),
        ToolDefinition(
            name="list_files",
            description="List files and directories at a path, directories first.",
            parameters=PydanticSchema(ListFilesParams),
            execute=_list,
        ),
        ToolDefinition(
            name="delete_path",
            description="Delete a file or directory from the sandbox.",
            parameters=PydanticSchema(PathParams),
            execute=_delete,
        ),
        ToolDefinition(
            name="create_directory",
            description="Create a directory, including missing parents.",
            parameters=PydanticSchema(PathParams),
            execute=_mkdir,
        ),
    ]
