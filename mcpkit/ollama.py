"""Client for the Ollama chat API, with tool definitions and chat history."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import requests

DEFAULT_BASE_URL = "http://localhost:11434"

TOOL_SYSTEM_PROMPT = (
    "You are Granite, developed by IBM. You are a helpful assistant with tools. "
    "When a tool is required to answer the user's query, respond only with "
    "<|tool_call|> followed by a JSON list of tools used. If a tool does not exist "
    "in the provided list of tools, notify the user that you do not have the "
    "ability to fulfill the request.<|end_of_text|>"
)


class OllamaError(Exception):
    """Raised when a request to the Ollama API fails."""


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"invalid type: expected {what} to be an object")
    return data


def _required(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = _required(data, key)
    if not isinstance(value, str):
        raise ValueError(f"invalid type for field `{key}`: expected a string")
    return value


def _required_bool(data: Mapping[str, Any], key: str) -> bool:
    value = _required(data, key)
    if not isinstance(value, bool):
        raise ValueError(f"invalid type for field `{key}`: expected a boolean")
    return value


def _optional_int(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"invalid type for field `{key}`: expected a non-negative integer")
    return value


@dataclass
class OllamaFunctionCall:
    """A function the model asked to call, with its arguments."""

    name: str
    arguments: Any

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: Any) -> OllamaFunctionCall:
        data = _as_mapping(data, "function call")
        return cls(name=_required_str(data, "name"), arguments=_required(data, "arguments"))


@dataclass
class OllamaToolCall:
    """A tool call found in a model's reply."""

    function: OllamaFunctionCall

    def to_dict(self) -> dict[str, Any]:
        return {"function": self.function.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> OllamaToolCall:
        data = _as_mapping(data, "tool call")
        return cls(function=OllamaFunctionCall.from_dict(_required(data, "function")))


@dataclass
class ChatMessage:
    """A single message in a chat conversation."""

    role: str
    content: str
    tool_calls: list[OllamaToolCall] | None = None

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(role="assistant", content=content)

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role="system", content=content)

    @classmethod
    def assistant_with_tools(cls, content: str, tool_calls: list[OllamaToolCall]) -> ChatMessage:
        return cls(role="assistant", content=content, tool_calls=list(tool_calls))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls is not None:
            result["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        return result

    @classmethod
    def from_dict(cls, data: Any) -> ChatMessage:
        data = _as_mapping(data, "message")
        raw_calls = data.get("tool_calls")
        if raw_calls is None:
            tool_calls = None
        elif isinstance(raw_calls, list):
            tool_calls = [OllamaToolCall.from_dict(item) for item in raw_calls]
        else:
            raise ValueError("invalid type for field `tool_calls`: expected a list")
        return cls(
            role=_required_str(data, "role"),
            content=_required_str(data, "content"),
            tool_calls=tool_calls,
        )


@dataclass
class OllamaProperty:
    """One property in a function's parameter schema."""

    prop_type: str
    description: str
    enum: list[str] | None = None

    @classmethod
    def string(cls, description: str) -> OllamaProperty:
        return cls(prop_type="string", description=description)

    @classmethod
    def string_enum(cls, description: str, values: list[str]) -> OllamaProperty:
        return cls(prop_type="string", description=description, enum=list(values))

    @classmethod
    def number(cls, description: str) -> OllamaProperty:
        return cls(prop_type="number", description=description)

    @classmethod
    def boolean(cls, description: str) -> OllamaProperty:
        return cls(prop_type="boolean", description=description)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.prop_type, "description": self.description}
        if self.enum is not None:
            result["enum"] = list(self.enum)
        return result


@dataclass
class OllamaParameters:
    """Object schema describing a function's parameters."""

    properties: dict[str, OllamaProperty] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    param_type: str = "object"

    def add_property(self, name: str, prop: OllamaProperty) -> OllamaParameters:
        """Add or replace a property; returns self for chaining."""
        self.properties[name] = prop
        return self

    def add_required(self, name: str) -> OllamaParameters:
        """Mark a property as required; returns self for chaining."""
        self.required.append(name)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.param_type,
            "properties": {name: prop.to_dict() for name, prop in self.properties.items()},
            "required": list(self.required),
        }


@dataclass
class OllamaFunction:
    """A function the model may call."""

    name: str
    description: str
    parameters: OllamaParameters

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.to_dict(),
        }


@dataclass
class OllamaTool:
    """A tool definition as the Ollama API expects it."""

    function: OllamaFunction
    tool_type: str = "function"

    @classmethod
    def function_tool(cls, function: OllamaFunction) -> OllamaTool:
        return cls(function=function)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.tool_type, "function": self.function.to_dict()}


@dataclass
class ChatRequest:
    """Payload of a request to ``/api/chat``."""

    model: str
    messages: list[ChatMessage]
    tools: list[OllamaTool] = field(default_factory=list)
    stream: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
        }
        if self.tools:
            result["tools"] = [tool.to_dict() for tool in self.tools]
        result["stream"] = self.stream
        return result


@dataclass
class ChatResponse:
    """Reply from ``/api/chat``."""

    model: str
    created_at: str
    message: ChatMessage
    done: bool
    total_duration: int | None = None
    load_duration: int | None = None
    prompt_eval_count: int | None = None
    prompt_eval_duration: int | None = None
    eval_count: int | None = None
    eval_duration: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ChatResponse:
        data = _as_mapping(data, "chat response")
        return cls(
            model=_required_str(data, "model"),
            created_at=_required_str(data, "created_at"),
            message=ChatMessage.from_dict(_required(data, "message")),
            done=_required_bool(data, "done"),
            total_duration=_optional_int(data, "total_duration"),
            load_duration=_optional_int(data, "load_duration"),
            prompt_eval_count=_optional_int(data, "prompt_eval_count"),
            prompt_eval_duration=_optional_int(data, "prompt_eval_duration"),
            eval_count=_optional_int(data, "eval_count"),
            eval_duration=_optional_int(data, "eval_duration"),
        )


@dataclass
class OllamaConfig:
    """Generation settings for an Ollama client."""

    model: str
    temperature: float | None = None
    max_tokens: int | None = None


def _post_chat(session: requests.Session, base_url: str, payload: ChatRequest) -> ChatResponse:
    url = f"{base_url}/api/chat"
    try:
        response = session.post(url, json=payload.to_dict())
    except requests.RequestException as exc:
        raise OllamaError(f"Request to {url} failed: {exc}") from exc

    if not 200 <= response.status_code < 300:
        raise OllamaError(f"Request failed with status : {response.text}")

    try:
        return ChatResponse.from_dict(response.json())
    except ValueError as exc:
        raise OllamaError(f"Invalid chat response: {exc}") from exc


class Ollama:
    """Stateless client for single chat requests."""

    def __init__(
        self,
        config: OllamaConfig,
        tools: list[OllamaTool] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = DEFAULT_BASE_URL
        self.model = config.model
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens
        self.tools = list(tools) if tools else []
        self._session = session if session is not None else requests.Session()

    @classmethod
    def default(cls, model: str) -> Ollama:
        """A client for ``model`` with no tools and default settings."""
        return cls(OllamaConfig(model=model))

    def chat(self, message: str, model: str) -> ChatResponse:
        """Send one user message to ``model`` with the client's tools."""
        payload = ChatRequest(
            model=model, messages=[ChatMessage.user(message)], tools=list(self.tools)
        )
        return _post_chat(self._session, self.base_url, payload)

    def chat_with_tools(self, message: str, model: str, tools: list[OllamaTool]) -> ChatResponse:
        """Send one user message, preceded by a tool-use system prompt, with ``tools``."""
        payload = ChatRequest(
            model=model,
            messages=[ChatMessage.system(TOOL_SYSTEM_PROMPT), ChatMessage.user(message)],
            tools=list(tools),
        )
        return _post_chat(self._session, self.base_url, payload)


class ChatSession:
    """A conversation that keeps its message history between requests."""

    def __init__(
        self,
        model: str,
        tools: list[OllamaTool] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = DEFAULT_BASE_URL
        self.model = model
        self.tools = list(tools) if tools else []
        self.messages: list[ChatMessage] = []
        self._session = session if session is not None else requests.Session()

    def send(self, message: str) -> ChatResponse:
        """Append a user message, send the whole history, and record the reply."""
        self.messages.append(ChatMessage.user(message))
        payload = ChatRequest(
            model=self.model, messages=list(self.messages), tools=list(self.tools)
        )
        response = _post_chat(self._session, self.base_url, payload)
        self.messages.append(response.message)
        return response

    def add_system_message(self, content: str) -> None:
        self.messages.append(ChatMessage.system(content))