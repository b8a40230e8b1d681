"""MCP client and HTTP server over JSON-RPC, an Ollama chat client, and a sandboxed file_read tool."""

__version__ = "0.1.0"