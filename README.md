# mcpkit

A small toolkit for the Model Context Protocol (MCP) over JSON-RPC 2.0 and HTTP. It has four parts:

- **An MCP server** (`mcpkit.mcp.McpServer`). It answers `tools/list` and `tools/call` requests on `POST /mcp`.
- **An MCP client** (`mcpkit.mcp.McpClient`). It lists the tools a server offers and calls them.
- **An Ollama chat client** (`mcpkit.ollama`). `Ollama` sends single chat requests and `ChatSession` keeps the history of a conversation. Both can offer function-calling tools to the model.
- **A `file_read` tool** (`mcpkit.file_read`). It reads UTF-8 text files, but only from under `/tmp/allowed_files/`.

## Installation

```
pip install .
```

To also install what the tests need:

```
pip install .[test]
```

## Command-line use

### Server

```
mcp-server
```

This command starts a server on `http://localhost:8080/mcp` with the `file_read` tool registered. The server listens on `127.0.0.1` only. Use `-p`/`--port` to choose another port:

```
mcp-server --port 9000
```

You can try it with curl:

```
curl -X POST http://localhost:8080/mcp \
  -H 'Content-Type: application/json' \
  -d '{"jsonrpc":"2.0","id":"1","method":"tools/list"}'
```

To call the tool:

```
curl -X POST http://localhost:8080/mcp \
  -H 'Content-Type: application/json' \
  -d '{"jsonrpc":"2.0","id":"2","method":"tools/call","params":{"name":"file_read","arguments":{"path":"/tmp/allowed_files/notes.txt"}}}'
```

The result of a `file_read` call is one text item that gives the path, the size in bytes, the MIME type guessed from the file extension, and then the contents. The call is refused if the path is outside `/tmp/allowed_files/`, does not exist, or is not a file. A refusal comes back as the tool's text result (`Error reading file: ...`), not as a JSON-RPC error.

JSON-RPC errors are returned in these cases:

- `-32601` for an unknown method or an unregistered tool.
- `-32602` for missing or invalid params, and for missing or invalid `file_read` arguments.

The server answers at the HTTP level in these cases:

- Any path other than `/mcp`: 404.
- A method other than POST or OPTIONS on `/mcp`: 405.
- A body that is not `application/json`: 415.
- A body that cannot be parsed: 400.
- A body that is not a JSON-RPC request: 422.

Every response allows any origin (CORS).

### Client

The client talks to a local Ollama instance at `http://localhost:11434`. It needs the address of an MCP server, and you must choose exactly one of two modes.

To send a single prompt read from a file:

```
mcp-client -s http://localhost:8080/mcp -f prompt.txt -m llama3
```

To start a conversation:

```
mcp-client -s http://localhost:8080/mcp -c -m llama3
```

In prompt-file mode, the client sends the file's contents once and prints the reply. It offers no tools, and it does not contact the MCP server.

In conversational mode, the client does these steps:

1. It fetches the server's tool list and prints it.
2. It offers a `file_read` tool to the model.
3. When the model asks for a tool, it runs the call on the MCP server and sends the result back to the model as a new user message. If the call fails, it sends the error instead.

Type `quit` or `exit` to leave. The conversation also ends when the input ends.

| Option | Meaning |
| --- | --- |
| `-s`, `--mcp-server` | MCP server URL (required) |
| `-f`, `--prompt-file` | read a single prompt from a file |
| `-c`, `--converse` | conversational mode |
| `-m`, `--model` | model name (default `llama3`) |
| `-V`, `--version` | print the version and exit |

## Library use

```python
from mcpkit.mcp import McpServer
from mcpkit.file_read import get_tool_definition

server = McpServer(port=8080)
server.add_tool(get_tool_definition())
server.start()  # blocks until interrupted
```

`McpServer.create_http_server(host)` returns a bound `ThreadingHTTPServer` that has not started serving yet. This is useful for running the server in a thread of your own. The request handling itself is available as `mcpkit.mcp.handle_jsonrpc(state, request)`.

```python
from mcpkit.mcp import McpClient

client = McpClient("http://localhost:8080/mcp")
for tool in client.list_tools():
    print(tool.name, tool.description)
result = client.call_tool("file_read", {"path": "/tmp/allowed_files/notes.txt"})
```

```python
from mcpkit.ollama import ChatSession, OllamaTool, OllamaFunction, OllamaParameters, OllamaProperty

params = OllamaParameters().add_property("path", OllamaProperty.string("The file path to read"))
tool = OllamaTool.function_tool(OllamaFunction("file_read", "Read a file", params))

session = ChatSession("llama3", [tool])
session.add_system_message("You are a helpful assistant.")
reply = session.send("What is in /tmp/allowed_files/notes.txt?")
print(reply.message.content)
```

`McpClient`, `Ollama` and `ChatSession` each accept an optional `requests.Session` as `session`.

## Errors

Each part raises its own exception:

- `McpClient` raises `McpError` for these failures:
  - failed requests;
  - non-2xx HTTP responses;
  - malformed replies;
  - errors reported by the server.
- `Ollama` and `ChatSession` raise `OllamaError` for failed requests, non-2xx responses and malformed replies.
- `execute_file_read` raises `FileReadError` when it is called directly on a path it refuses or cannot read.

## What it does not do

- The server runs only `file_read`. Other tools can be registered and listed, but calling one only returns a text saying that it ran, together with its arguments.
- Chat requests are never streamed.
- `OllamaConfig` holds a temperature and a token limit, but these values are not sent to Ollama.
- The Ollama address is fixed at `http://localhost:11434` unless you change `base_url` on the client object.