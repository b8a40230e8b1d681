import json
import os
import threading
import urllib.error
import urllib.request
import uuid

import pytest
import requests
import responses

from mcpkit import file_read
from mcpkit.mcp import (
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    McpClient,
    McpError,
    McpServer,
    McpServerState,
    McpTool,
    handle_jsonrpc,
)

URL = "http://localhost:8080/mcp"


@pytest.fixture
def state():
    registry = McpServerState()
    registry.add_tool(file_read.get_tool_definition())
    registry.add_tool(McpTool(name="echo", description="Echo back"))
    return registry


def call(state, method, params=None):
    return handle_jsonrpc(state, JsonRpcRequest(id="1", method=method, params=params))


def text_of(response):
    return response.result["content"][0]["text"]


def test_request_round_trip():
    request = JsonRpcRequest(id="7", method="tools/list")
    data = request.to_dict()
    assert data == {"jsonrpc": "2.0", "id": "7", "method": "tools/list", "params": None}
    assert JsonRpcRequest.from_dict(data) == request


def test_request_from_dict_rejects_numeric_id():
    with pytest.raises(ValueError, match="`id`"):
        JsonRpcRequest.from_dict({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})


def test_response_from_dict_with_error():
    response = JsonRpcResponse.from_dict(
        {"jsonrpc": "2.0", "id": "3", "error": {"code": -32601, "message": "Method not found"}}
    )
    assert response.result is None
    assert response.error == JsonRpcError(code=-32601, message="Method not found")


def test_response_round_trip_through_json():
    response = JsonRpcResponse(id="9", error=JsonRpcError(code=-32602, message="Missing params"))
    assert JsonRpcResponse.from_dict(json.loads(json.dumps(response.to_dict()))) == response


def test_tool_uses_input_schema_key():
    tool = McpTool(name="t", description="d", input_schema={"type": "object"})
    data = tool.to_dict()
    assert data["inputSchema"] == {"type": "object"}
    assert McpTool.from_dict(data) == tool


def test_state_replaces_tool_with_same_name():
    registry = McpServerState()
    registry.add_tool(McpTool(name="x", description="first"))
    registry.add_tool(McpTool(name="x", description="second"))
    assert [t.description for t in registry.get_tools()] == ["second"]
    assert registry.get_tool("missing") is None


def test_tools_list(state):
    response = call(state, "tools/list")
    assert response.error is None
    assert sorted(t["name"] for t in response.result["tools"]) == ["echo", "file_read"]


def test_unknown_method(state):
    response = call(state, "bogus")
    assert response.id == "1"
    assert response.result is None
    assert response.error == JsonRpcError(code=-32601, message="Method not found")


def test_tools_call_missing_params(state):
    assert call(state, "tools/call").error == JsonRpcError(code=-32602, message="Missing params")


def test_tools_call_invalid_params(state):
    error = call(state, "tools/call", {"arguments": {}}).error
    assert error.code == -32602
    assert error.message.startswith("Invalid params: ")


def test_tools_call_unknown_tool(state):
    error = call(state, "tools/call", {"name": "nope"}).error
    assert error == JsonRpcError(code=-32601, message="Tool 'nope' not found")


def test_generic_tool(state):
    response = call(state, "tools/call", {"name": "echo", "arguments": {"a": 1}})
    assert response.result["content"][0]["type"] == "text"
    assert text_of(response).startswith("Tool 'echo' executed successfully with arguments:")


def test_file_read_requires_arguments(state):
    error = call(state, "tools/call", {"name": "file_read"}).error
    assert error == JsonRpcError(code=-32602, message="file_read tool requires arguments")


def test_file_read_invalid_arguments(state):
    error = call(state, "tools/call", {"name": "file_read", "arguments": {"file": "x"}}).error
    assert error.code == -32602
    assert error.message.startswith("Invalid file_read arguments: ")


def test_file_read_access_denied(state):
    response = call(state, "tools/call", {"name": "file_read", "arguments": {"path": "/etc/hostname"}})
    assert response.error is None
    assert text_of(response).startswith("Error reading file: Access denied")


def test_file_read_success(state, tmp_path, monkeypatch):
    monkeypatch.setattr(file_read, "ALLOWED_PREFIX", str(tmp_path) + os.sep)
    target = tmp_path / "a.txt"
    target.write_bytes(b"hello")
    response = call(state, "tools/call", {"name": "file_read", "arguments": {"path": str(target)}})
    assert text_of(response) == (
        f"File: {target}\nSize: {len(b'hello')} bytes\nMIME Type: text/plain\n\nContent:\nhello"
    )


def test_client_request_body():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, json={"jsonrpc": "2.0", "id": "x", "result": {"ok": True}})
        response = McpClient(URL).make_request("ping", {"a": 1})
        body = json.loads(rsps.calls[0].request.body)
    assert response.result == {"ok": True}
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "ping"
    assert body["params"] == {"a": 1}
    assert uuid.UUID(body["id"]).version == 4


def test_client_server_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, json={
            "jsonrpc": "2.0", "id": "x",
            "error": {"code": -32601, "message": "Method not found"},
        })
        with pytest.raises(McpError, match="MCP server error -32601: Method not found"):
            McpClient(URL).make_request("bogus")


def test_client_http_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=500, body="boom")
        with pytest.raises(McpError, match=r"^HTTP error 500.*boom"):
            McpClient(URL).make_request("tools/list")


def test_client_connection_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, body=requests.ConnectionError("down"))
        with pytest.raises(McpError):
            McpClient(URL).make_request("tools/list")


def test_list_tools(capsys):
    tool = file_read.get_tool_definition()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, json={
            "jsonrpc": "2.0", "id": "x", "result": {"tools": [tool.to_dict()]},
        })
        tools = McpClient(URL).list_tools()
    assert tools == [tool]
    assert "Retrieved 1 tools from MCP server" in capsys.readouterr().out


def test_list_tools_without_result():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, json={"jsonrpc": "2.0", "id": "x"})
        with pytest.raises(McpError, match="No result in tools/list response"):
            McpClient(URL).list_tools()


def test_call_tool():
    result = {"content": [{"type": "text", "text": "done"}]}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, json={"jsonrpc": "2.0", "id": "x", "result": result})
        assert McpClient(URL).call_tool("echo", {"v": 2}) == result
        body = json.loads(rsps.calls[0].request.body)
    assert body["params"] == {"name": "echo", "arguments": {"v": 2}}


def test_call_tool_without_result():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, json={"jsonrpc": "2.0", "id": "x"})
        with pytest.raises(McpError, match="No result in tools/call response"):
            McpClient(URL).call_tool("echo")


@pytest.fixture
def running_server():
    server = McpServer(port=0)
    server.add_tool(file_read.get_tool_definition())
    httpd = server.create_http_server()
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    host, port = httpd.server_address[:2]
    yield f"http://{host}:{port}"
    httpd.shutdown()
    httpd.server_close()
    thread.join()


def post(url, body, content_type="application/json"):
    """Send a POST and return the status, headers and body, errors included."""
    request = urllib.request.Request(url, data=body, method="POST")
    if content_type is not None:
        request.add_header("Content-Type", content_type)
    try:
        with urllib.request.urlopen(request, timeout=5) as reply:
            return reply.status, reply.headers, reply.read()
    except urllib.error.HTTPError as error:
        with error:
            return error.code, error.headers, error.read()


def test_server_tools_list(running_server):
    body = json.dumps({"jsonrpc": "2.0", "id": "1", "method": "tools/list"}).encode()
    status, headers, payload = post(running_server + "/mcp", body)
    data = json.loads(payload)
    assert status == 200
    assert headers["Access-Control-Allow-Origin"] == "*"
    assert data["id"] == "1"
    assert [t["name"] for t in data["result"]["tools"]] == ["file_read"]


def test_server_unknown_path(running_server):
    status, _, _ = post(running_server + "/other", b"{}")
    assert status == 404


def test_server_requires_json_content_type(running_server):
    status, _, _ = post(running_server + "/mcp", b"{}", content_type="text/plain")
    assert status == 415


def test_server_rejects_bad_json(running_server):
    status, _, _ = post(running_server + "/mcp", b"{not json")
    assert status == 400


def test_server_rejects_bad_shape(running_server):
    status, _, _ = post(running_server + "/mcp", json.dumps({"jsonrpc": "2.0", "id": 1}).encode())
    assert status == 422