"""JSON-RPC 2.0 client and server speaking the Model Context Protocol."""

from __future__ import annotations

import json
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import requests

from .file_read import FileReadError, FileReadRequest, execute_file_read

JSONRPC_VERSION = "2.0"
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
DEFAULT_PORT = 8080


class McpError(Exception):
    """Raised when an MCP request fails or the server reports an error."""


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"invalid type: expected {what} to be an object")
    return data


def _required_str(data: Mapping[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"invalid type for field `{key}`: expected a string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"invalid type for field `{key}`: expected a string")
    return value


@dataclass
class JsonRpcError:
    """The error member of a JSON-RPC response."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": self.data}

    @classmethod
    def from_dict(cls, data: Any) -> JsonRpcError:
        data = _as_mapping(data, "error")
        if "code" not in data:
            raise ValueError("missing field `code`")
        code = data["code"]
        if not isinstance(code, int) or isinstance(code, bool):
            raise ValueError("invalid type for field `code`: expected an integer")
        return cls(code=code, message=_required_str(data, "message"), data=data.get("data"))


@dataclass
class JsonRpcRequest:
    """A JSON-RPC 2.0 request."""

    id: str
    method: str
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }

    @classmethod
    def from_dict(cls, data: Any) -> JsonRpcRequest:
        data = _as_mapping(data, "request")
        return cls(
            jsonrpc=_required_str(data, "jsonrpc"),
            id=_required_str(data, "id"),
            method=_required_str(data, "method"),
            params=data.get("params"),
        )


@dataclass
class JsonRpcResponse:
    """A JSON-RPC 2.0 response carrying either a result or an error."""

    id: str
    result: Any = None
    error: JsonRpcError | None = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "result": self.result,
            "error": None if self.error is None else self.error.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> JsonRpcResponse:
        data = _as_mapping(data, "response")
        error = data.get("error")
        return cls(
            jsonrpc=_required_str(data, "jsonrpc"),
            id=_required_str(data, "id"),
            result=data.get("result"),
            error=None if error is None else JsonRpcError.from_dict(error),
        )


@dataclass
class McpTool:
    """Description of a tool offered by an MCP server."""

    name: str
    description: str | None = None
    input_schema: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    @classmethod
    def from_dict(cls, data: Any) -> McpTool:
        data = _as_mapping(data, "tool")
        return cls(
            name=_required_str(data, "name"),
            description=_optional_str(data, "description"),
            input_schema=data.get("inputSchema"),
        )


class McpClient:
    """Client that talks JSON-RPC to an MCP server over HTTP."""

    def __init__(self, base_url: str, session: requests.Session | None = None) -> None:
        self.base_url = base_url
        self._session = session if session is not None else requests.Session()

    def make_request(self, method: str, params: Any = None) -> JsonRpcResponse:
        """Send one JSON-RPC request and return the successful response."""
        request = JsonRpcRequest(id=str(uuid.uuid4()), method=method, params=params)
        try:
            http_response = self._session.post(self.base_url, json=request.to_dict())
        except requests.RequestException as exc:
            raise McpError(f"Request to {self.base_url} failed: {exc}") from exc

        if not 200 <= http_response.status_code < 300:
            status = f"{http_response.status_code} {http_response.reason or ''}".rstrip()
            raise McpError(f"HTTP error {status}: {http_response.text}")

        try:
            response = JsonRpcResponse.from_dict(http_response.json())
        except ValueError as exc:
            raise McpError(f"Invalid JSON-RPC response: {exc}") from exc

        if response.error is not None:
            raise McpError(
                f"MCP server error {response.error.code}: {response.error.message}"
            )
        return response

    def list_tools(self) -> list[McpTool]:
        """Fetch the tools the server offers."""
        print(f"Requesting tool list from MCP server: {self.base_url}")
        response = self.make_request("tools/list")
        if response.result is None:
            raise McpError("No result in tools/list response")
        try:
            result = _as_mapping(response.result, "result")
            if "tools" not in result:
                raise ValueError("missing field `tools`")
            if not isinstance(result["tools"], list):
                raise ValueError("invalid type for field `tools`: expected a list")
            tools = [McpTool.from_dict(item) for item in result["tools"]]
        except ValueError as exc:
            raise McpError(f"Invalid tools/list result: {exc}") from exc

        print(f"Retrieved {len(tools)} tools from MCP server")
        for tool in tools:
            print(f"  - Tool: {tool.name} - {tool.description or 'No description'}")
        return tools

    def call_tool(self, name: str, arguments: Any = None) -> Any:
        """Run a tool on the server and return the raw result."""
        response = self.make_request(
            "tools/call", {"name": name, "arguments": arguments}
        )
        if response.result is None:
            raise McpError("No result in tools/call response")
        return response.result


class McpServerState:
    """Thread-safe registry of the tools a server offers."""

    def __init__(self) -> None:
        self._tools: dict[str, McpTool] = {}
        self._lock = threading.Lock()

    def add_tool(self, tool: McpTool) -> None:
        with self._lock:
            self._tools[tool.name] = tool

    def get_tools(self) -> list[McpTool]:
        with self._lock:
            return list(self._tools.values())

    def get_tool(self, name: str) -> McpTool | None:
        with self._lock:
            return self._tools.get(name)


def _success(request_id: str, result: Any) -> JsonRpcResponse:
    return JsonRpcResponse(id=request_id, result=result)


def _failure(request_id: str, code: int, message: str) -> JsonRpcResponse:
    return JsonRpcResponse(id=request_id, error=JsonRpcError(code=code, message=message))


def _text_result(request_id: str, text: str) -> JsonRpcResponse:
    return _success(request_id, {"content": [{"type": "text", "text": text}]})


def _parse_tools_call(params: Any) -> tuple[str, Any]:
    params = _as_mapping(params, "params")
    return _required_str(params, "name"), params.get("arguments")


def _call_file_read(request_id: str, arguments: Any) -> JsonRpcResponse:
    if arguments is None:
        return _failure(request_id, INVALID_PARAMS, "file_read tool requires arguments")
    try:
        file_request = FileReadRequest.from_dict(arguments)
    except ValueError as exc:
        return _failure(request_id, INVALID_PARAMS, f"Invalid file_read arguments: {exc}")
    try:
        file_response = execute_file_read(file_request)
    except FileReadError as exc:
        return _text_result(request_id, f"Error reading file: {exc}")

    mime_type = file_response.mime_type if file_response.mime_type is not None else "unknown"
    return _text_result(
        request_id,
        f"File: {file_response.path}\n"
        f"Size: {file_response.size} bytes\n"
        f"MIME Type: {mime_type}\n\n"
        f"Content:\n{file_response.content}",
    )


def _handle_tools_call(state: McpServerState, request: JsonRpcRequest) -> JsonRpcResponse:
    if request.params is None:
        return _failure(request.id, INVALID_PARAMS, "Missing params")
    try:
        name, arguments = _parse_tools_call(request.params)
    except ValueError as exc:
        return _failure(request.id, INVALID_PARAMS, f"Invalid params: {exc}")

    if state.get_tool(name) is None:
        return _failure(request.id, METHOD_NOT_FOUND, f"Tool '{name}' not found")

    if name == "file_read":
        return _call_file_read(request.id, arguments)

    shown = "None" if arguments is None else json.dumps(arguments)
    return _text_result(
        request.id, f"Tool '{name}' executed successfully with arguments: {shown}"
    )


def handle_jsonrpc(state: McpServerState, request: JsonRpcRequest) -> JsonRpcResponse:
    """Dispatch one JSON-RPC request against the registered tools."""
    if request.method == "tools/list":
        tools = [tool.to_dict() for tool in state.get_tools()]
        return _success(request.id, {"tools": tools})
    if request.method == "tools/call":
        return _handle_tools_call(state, request)
    return _failure(request.id, METHOD_NOT_FOUND, "Method not found")


def _is_json_content_type(header: str) -> bool:
    mime = header.split(";", 1)[0].strip().lower()
    if mime == "application/json":
        return True
    return mime.startswith("application/") and mime.endswith("+json")


def _make_handler(state: McpServerState) -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def log_message(self, format: str, *args: Any) -> None:
            pass

        def _read_body(self) -> bytes:
            length = int(self.headers.get("Content-Length") or 0)
            return self.rfile.read(length) if length > 0 else b""

        def _send(self, status: int, body: bytes = b"", content_type: str | None = None) -> None:
            self.send_response(status)
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Access-Control-Expose-Headers", "*")
            if content_type is not None:
                self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)

        def _path(self) -> str:
            return self.path.split("?", 1)[0]

        def do_OPTIONS(self) -> None:
            self._read_body()
            self.send_response(200)
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Access-Control-Allow-Methods", "*")
            self.send_header("Access-Control-Allow-Headers", "*")
            self.send_header("Content-Length", "0")
            self.end_headers()

        def do_POST(self) -> None:
            body = self._read_body()
            if self._path() != "/mcp":
                self._send(404)
                return
            if not _is_json_content_type(self.headers.get("Content-Type", "")):
                self._send(
                    415,
                    b"Expected request with `Content-Type: application/json`",
                    "text/plain; charset=utf-8",
                )
                return
            try:
                payload = json.loads(body)
            except ValueError as exc:
                self._send(400, f"Failed to parse the request body as JSON: {exc}".encode(),
                           "text/plain; charset=utf-8")
                return
            try:
                request = JsonRpcRequest.from_dict(payload)
            except ValueError as exc:
                self._send(422, f"Failed to deserialize the JSON body: {exc}".encode(),
                           "text/plain; charset=utf-8")
                return
            response = handle_jsonrpc(state, request)
            self._send(200, json.dumps(response.to_dict()).encode("utf-8"), "application/json")

        def _reject(self) -> None:
            self._read_body()
            self._send(405 if self._path() == "/mcp" else 404)

        do_GET = do_PUT = do_DELETE = do_PATCH = do_HEAD = _reject

    return _Handler


class McpServer:
    """HTTP server exposing registered tools at ``/mcp``."""

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        self.port = port
        self.state = McpServerState()

    def add_tool(self, tool: McpTool) -> None:
        self.state.add_tool(tool)

    def create_http_server(self, host: str = "127.0.0.1") -> ThreadingHTTPServer:
        """Bind a server to ``host`` and the configured port, without serving yet."""
        server = ThreadingHTTPServer((host, self.port), _make_handler(self.state))
        server.daemon_threads = True
        return server

    def start(self) -> None:
        """Serve requests until interrupted."""
        with self.create_http_server() as server:
            print(f"Starting MCP server on http://localhost:{self.port}/mcp")
            server.serve_forever()