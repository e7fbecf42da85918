"""MCP (Model Context Protocol) integration for agent-thread.

Wraps MCP server tools as native agent-thread Tool instances, so a thread
dispatches them through the same executor as local tools.

Requires: pip install agent-thread[mcp]
"""

import asyncio
import json
import logging
from contextlib import AsyncExitStack
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, create_model

from agent_thread.context import Context
from agent_thread.exceptions import ToolExecutionError
from agent_thread.tools import Predicate, Tool, evaluate

from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.client.streamable_http import streamablehttp_client

logger = logging.getLogger(__name__)

_PRIMITIVES: dict[str, type] = {
    "string": str,
    "number": float,
    "integer": int,
    "boolean": bool,
}

DEFAULT_TIMEOUT = 30.0


def _annotation(prop: dict, path: str) -> Any:
    """Annotation for one property schema. Constructs it cannot map become Any."""
    if "enum" in prop:
        return Literal[tuple(prop["enum"])]  # type: ignore[valid-type]

    match prop.get("type"):
        case str(name) if name in _PRIMITIVES:
            return _PRIMITIVES[name]
        case "array":
            item_type = (prop.get("items") or {}).get("type")
            item = _PRIMITIVES.get(item_type) if isinstance(item_type, str) else None
            return list[item] if item else list
        case "object" if "properties" in prop:
            return input_model_from_schema(path, prop)
        case "object":
            return dict
        case [first, second] if "null" in (first, second):
            # JSON Schema spelling of a nullable field
            other = second if first == "null" else first
            return Optional[_annotation({**prop, "type": other}, path)]
        case _:
            return Any


def input_model_from_schema(name: str, schema: dict) -> type[BaseModel]:
    """Pydantic model for an MCP tool's ``inputSchema``.

    Optional properties without a default accept None. Nested objects with
    properties become nested models named after their path.
    """
    required = set(schema.get("required", ()))
    fields: dict[str, Any] = {}

    for prop_name, prop in schema.get("properties", {}).items():
        annotation = _annotation(prop, f"{name}_{prop_name}")
        if prop_name in required:
            default = ...
        else:
            default = prop.get("default")
            if default is None:
                annotation = Optional[annotation]
        fields[prop_name] = (
            annotation,
            Field(default, description=prop.get("description", "")),
        )

    return create_model(f"{name}_Input", **fields)


class MCPTool(Tool):
    """A tool served by an MCP server, called through its client session."""

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: dict,
        session: ClientSession,
        timeout: float = DEFAULT_TIMEOUT,
        filter: Optional[Predicate] = None,
    ):
        self.name = name
        self.description = description
        self.input_schema = input_schema
        self.input_model = input_model_from_schema(name, input_schema)
        self._session = session
        self._timeout = timeout
        self._filter = filter

    async def is_enabled(self, context: Context, agent: Any) -> bool:
        if self._filter is None:
            return True
        return await evaluate(self._filter, context, self)

    def schema(self) -> dict:
        """The server's own schema, sent to the model as-is."""
        return {"type": "object", "properties": {}, **self.input_schema}

    async def _run(self, context: Context, validated: BaseModel) -> Any:
        return await self.execute(**validated.model_dump(exclude_unset=True))

    async def execute(self, **kwargs) -> str:
        """Call the MCP tool and return its text content."""
        try:
            result = await asyncio.wait_for(
                self._session.call_tool(self.name, arguments=kwargs),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise ToolExecutionError(
                f"MCP tool '{self.name}' timed out after {self._timeout}s"
            )
        except Exception as e:
            raise ToolExecutionError(f"MCP tool '{self.name}' call failed: {e}") from e

        texts = [c.text for c in result.content if hasattr(c, "text")]
        if result.isError:
            raise ToolExecutionError(
                f"MCP tool '{self.name}' returned error: {' '.join(texts)}"
            )
        return _join_content(texts, len(result.content) - len(texts))


def _join_content(texts: list[str], skipped: int) -> str:
    """One text block as-is, several as a JSON list."""
    if skipped:
        texts = texts + [f"[{skipped} non-text content block(s) omitted]"]
    if not texts:
        return ""
    if len(texts) == 1:
        return texts[0]
    return json.dumps(texts)


class MCPConnection:
    """One MCP server session and the tools it exposes.

    ``server_params`` picks the transport: ``StdioServerParameters`` spawns
    the server as a subprocess, a URL string speaks streamable HTTP. The
    ``timeout`` applies to the handshake, tool listing and every tool call.
    ``filter(context, tool)``, sync or async, decides per run which of the
    server's tools are offered to the model.
    Discovered tools are cached on the connection and dropped on
    disconnect; ``list_tools(refresh=True)`` asks the server again::

        async with MCPConnection("http://localhost:8000/mcp") as tools:
            result = await Agent(model=model, tools=tools).run_async("query")
    """

    def __init__(
        self,
        server_params: Union[StdioServerParameters, str],
        timeout: float = DEFAULT_TIMEOUT,
        filter: Optional[Predicate] = None,
    ):
        self._server_params = server_params
        self._timeout = timeout
        self._filter = filter
        self._exit_stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._tools: list[MCPTool] | None = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    def _transport(self):
        if isinstance(self._server_params, str):
            return streamablehttp_client(self._server_params)
        return stdio_client(self._server_params)

    async def connect(self) -> list[Tool]:
        """Start a fresh session and return the server's tools."""
        await self.disconnect()

        stack = self._exit_stack = AsyncExitStack()
        try:
            read_stream, write_stream, *_ = await stack.enter_async_context(
                self._transport()
            )
            self._session = await stack.enter_async_context(
                ClientSession(read_stream, write_stream)
            )
            await asyncio.wait_for(self._session.initialize(), timeout=self._timeout)
            return list(await self.list_tools(refresh=True))
        except BaseException:
            await self.disconnect()
            raise

    async def list_tools(self, refresh: bool = False) -> list[MCPTool]:
        if self._session is None:
            raise ToolExecutionError("MCP connection is not open")
        if self._tools is None or refresh:
            listing = await asyncio.wait_for(
                self._session.list_tools(), timeout=self._timeout
            )
            self._tools = [self._wrap(info) for info in listing.tools]
            logger.debug(f"MCP server exposed {len(self._tools)} tool(s)")
        return self._tools

    def _wrap(self, info: Any) -> MCPTool:
        return MCPTool(
            name=info.name,
            description=info.description or "",
            input_schema=info.inputSchema,
            session=self._session,
            timeout=self._timeout,
            filter=self._filter,
        )

    async def disconnect(self) -> None:
        stack, self._exit_stack = self._exit_stack, None
        self._session = None
        self._tools = None
        if stack is not None:
            await stack.aclose()

    async def __aenter__(self) -> list[Tool]:
        return await self.connect()

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()
