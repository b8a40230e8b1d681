"""Command that serves the file_read tool over MCP."""

from __future__ import annotations

import argparse
import sys

from .file_read import get_tool_definition
from .mcp import DEFAULT_PORT, McpServer


def build_server(port: int = DEFAULT_PORT) -> McpServer:
    """Create a server on ``port`` with the file_read tool registered."""
    server = McpServer(port)
    server.add_tool(get_tool_definition())
    return server


def _usage_hint(port: int) -> str:
    url = f"http://localhost:{port}/mcp"
    list_body = '{"jsonrpc":"2.0","id":"1","method":"tools/list"}'
    call_body = (
        '{"jsonrpc":"2.0","id":"2","method":"tools/call",'
        '"params":{"name":"file_read","arguments":{"path":"Cargo.toml"}}}'
    )
    return "\n".join(
        [
            "You can test it with:",
            f"curl -X POST {url} \\",
            "  -H 'Content-Type: application/json' \\",
            f"  -d '{list_body}'",
            "",
            "Or call the file_read tool:",
            f"curl -X POST {url} \\",
            "  -H 'Content-Type: application/json' \\",
            f"  -d '{call_body}'",
        ]
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mcp-server", description="Serve the file_read tool over MCP."
    )
    parser.add_argument(
        "-p", "--port", type=int, default=DEFAULT_PORT, help="port to listen on"
    )
    args = parser.parse_args(argv)

    server = build_server(args.port)
    print("MCP server starting with file_read tool...")
    print(_usage_hint(args.port))
    try:
        server.start()
    except KeyboardInterrupt:
        pass
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())