"""Command that chats with an Ollama model and runs its tool calls on an MCP server."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, TextIO

from .mcp import McpClient, McpError
from .ollama import (
    ChatSession,
    Ollama,
    OllamaConfig,
    OllamaError,
    OllamaFunction,
    OllamaParameters,
    OllamaProperty,
    OllamaTool,
    OllamaToolCall,
)

VERSION = "0.1.0"
DEFAULT_MODEL = "llama3"


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the command."""
    parser = argparse.ArgumentParser(
        prog="mcp-client", description="An MCP client for Ollama API"
    )
    parser.add_argument(
        "-f", "--prompt-file", dest="prompt_file", help="Read prompt from a file"
    )
    parser.add_argument(
        "-c", "--converse", action="store_true", help="Start conversational mode"
    )
    parser.add_argument(
        "-m", "--model", default=DEFAULT_MODEL, help="Specify the model to use"
    )
    parser.add_argument(
        "-s",
        "--mcp-server",
        dest="mcp_server",
        required=True,
        help="MCP server address (e.g., http://localhost:3000/mcp)",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse arguments; exactly one of --converse and --prompt-file must be given."""
    args = build_parser().parse_args(argv)
    if args.converse == (args.prompt_file is not None):
        print(
            "Error: You must provide either --converse (-c) or --prompt-file (-f), "
            "but not both",
            file=sys.stderr,
        )
        print("Use --help for more information", file=sys.stderr)
        raise SystemExit(1)
    return args


def file_read_tool() -> OllamaTool:
    """The file_read tool as offered to the model."""
    return OllamaTool.function_tool(
        OllamaFunction(
            name="file_read",
            description=(
                "Read the contents of a file from the filesystem. "
                "The path must be within /tmp/allowed_files/"
            ),
            parameters=OllamaParameters().add_property(
                "path", OllamaProperty.string("The file path to read")
            ),
        )
    )


def run_prompt_file(args: argparse.Namespace) -> int:
    """Send the contents of the prompt file as a single message."""
    try:
        message = Path(args.prompt_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        print(f"Error reading prompt file: {args.prompt_file}", file=sys.stderr)
        return 1

    print(f"Using message from file: {message.strip()}")
    try:
        response = Ollama.default(args.model).chat(message, args.model)
    except OllamaError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Response: {response.message.content}")
    return 0


def _send_and_show(session: ChatSession, text: str, failure: str) -> None:
    try:
        reply = session.send(text)
    except OllamaError as exc:
        print(f"{failure}: {exc}")
        return
    print(f"Assistant: {reply.message.content}")


def _run_tool_call(session: ChatSession, mcp_client: McpClient, call: OllamaToolCall) -> None:
    name = call.function.name
    arguments = call.function.arguments
    print(f"Tool call: {name}")
    print(f"Tool call arguments: {_compact_json(arguments)}")

    try:
        result = mcp_client.call_tool(name, arguments)
    except McpError as exc:
        print(f"Error executing tool '{name}': {exc}")
        _send_and_show(
            session,
            f"Tool '{name}' execution failed: {exc}",
            "Error sending tool error to assistant",
        )
        return

    shown = _compact_json(result)
    print(f"Tool result: {shown}")
    _send_and_show(
        session,
        f"Tool '{name}' executed successfully. Result: {shown}",
        "Error sending tool result to assistant",
    )


def run_conversation(args: argparse.Namespace, input_stream: TextIO | None = None) -> int:
    """Chat interactively, executing the model's tool calls on the MCP server."""
    stream = sys.stdin if input_stream is None else input_stream

    print(f"Connecting to MCP server: {args.mcp_server}")
    mcp_client = McpClient(args.mcp_server)
    try:
        tools = mcp_client.list_tools()
    except McpError as exc:
        print(f"Failed to get tools from MCP server: {exc}", file=sys.stderr)
        print(f"Make sure the MCP server is running at: {args.mcp_server}", file=sys.stderr)
        return 1
    print(f"Successfully retrieved {len(tools)} tools from MCP server")

    config = OllamaConfig(model=args.model, temperature=0.7, max_tokens=100)
    print(f"Ollama config created: {config!r}")

    if tools:
        print("Available tools that could be used by the LLM:")
        for tool in tools:
            print(f"  - {tool.name}: {tool.description or 'No description'}")

    session = ChatSession(args.model, [file_read_tool()])
    print("Starting conversational mode. Type 'quit' or 'exit' to stop.")
    print("Type your message and press Enter:")

    while True:
        print("> ", end="", flush=True)
        try:
            line = stream.readline()
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Error reading input: {exc}")
            break
        if not line:
            break

        message = line.strip()
        if not message:
            continue
        if message.lower() in ("quit", "exit"):
            print("Goodbye!")
            break

        try:
            response = session.send(message)
        except OllamaError as exc:
            print(f"Error making request to Ollama: {exc}")
            continue

        print(f"Assistant: {response.message.content}")
        for call in response.message.tool_calls or []:
            _run_tool_call(session, mcp_client, call)

    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if not args.converse:
        return run_prompt_file(args)
    return run_conversation(args)


if __name__ == "__main__":
    sys.exit(main())