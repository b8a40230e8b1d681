"""The ``file_read`` tool: reading text files from an allowed directory."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .mcp import McpTool

ALLOWED_PREFIX = "/tmp/allowed_files/"

_MIME_TYPES = {
    "txt": "text/plain",
    "md": "text/markdown",
    "rs": "text/x-rust",
    "py": "text/x-python",
    "js": "text/javascript",
    "ts": "text/typescript",
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "css": "text/css",
    "yaml": "application/x-yaml",
    "yml": "application/x-yaml",
    "toml": "application/toml",
}


class FileReadError(Exception):
    """Raised when the file_read tool cannot return a file's contents."""


@dataclass(frozen=True)
class FileReadRequest:
    """Arguments of a file_read call."""

    path: str

    @classmethod
    def from_dict(cls, data: Any) -> FileReadRequest:
        """Build a request from decoded JSON arguments, raising ValueError if malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("invalid type: expected an object with a `path` field")
        if "path" not in data:
            raise ValueError("missing field `path`")
        path = data["path"]
        if not isinstance(path, str):
            raise ValueError("invalid type for field `path`: expected a string")
        return cls(path=path)


@dataclass(frozen=True)
class FileReadResponse:
    """Contents and metadata of a file that was read."""

    content: str
    path: str
    size: int
    mime_type: str | None


def execute_file_read(request: FileReadRequest) -> FileReadResponse:
    """Read the requested file, which must lie under ``ALLOWED_PREFIX``."""
    if not request.path.startswith(ALLOWED_PREFIX):
        raise FileReadError(f"Access denied: File path must be within {ALLOWED_PREFIX}")

    path = Path(request.path)
    if not path.exists():
        raise FileReadError(f"File not found: {request.path}")
    if not path.is_file():
        raise FileReadError(f"Path is not a file: {request.path}")

    try:
        with path.open(encoding="utf-8", newline="") as handle:
            content = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise FileReadError(f"Failed to read file '{request.path}': {exc}") from exc

    return FileReadResponse(
        content=content,
        path=request.path,
        size=len(content.encode("utf-8")),
        mime_type=guess_mime_type(request.path),
    )


def guess_mime_type(path: str) -> str | None:
    """Guess a MIME type from the file extension; None when unknown."""
    suffix = PurePath(path).suffix
    if not suffix:
        return None
    return _MIME_TYPES.get(suffix[1:])


def get_tool_definition() -> McpTool:
    """Return the MCP tool description of file_read."""
    from .mcp import McpTool

    return McpTool(
        name="file_read",
        description=(
            "Read the contents of a file from the filesystem. "
            "The path must be within /tmp/allowed_files/"
        ),
        input_schema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "The file path to read",
                }
            },
            "required": ["path"],
        },
    )