[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcpkit"
version = "0.1.0"
description = "A small Model Context Protocol client and server with an Ollama chat client and a sandboxed file_read tool"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["mcp", "model-context-protocol", "json-rpc", "ollama", "llm", "tools"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Environment :: Console",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
mcp-client = "mcpkit.client_cli:main"
mcp-server = "mcpkit.server_cli:main"

[tool.hatch.build.targets.wheel]
packages = ["mcpkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
