from typing import Iterable, Optional

from agent_thread.context import Context
from agent_thread.tools import Capability, Predicate, evaluate


class Toolkit:
    """Registry of the capabilities an agent may call, keyed by tool id.

    ``filter(context, tool)``, sync or async, narrows what ``tools`` lists
    for a given context. Resolving by id ignores it.
    """

    def __init__(
        self,
        tools: Optional[Iterable[Capability]] = None,
        filter: Optional[Predicate] = None,
    ):
        self._tools: dict[str, Capability] = {}
        self.filter = filter
        if tools:
            self.add(*tools)

    def add(self, *tools: Capability) -> None:
        for tool in tools:
            if tool.id in self._tools:
                raise ValueError(f"Duplicate tool id '{tool.id}'")
            self._tools[tool.id] = tool

    def resolve(self, tool_id: str) -> Optional[Capability]:
        return self._tools.get(tool_id)

    async def tools(self, context: Context) -> list[Capability]:
        """Registered capabilities the filter keeps, in registration order."""
        if self.filter is None:
            return list(self._tools.values())
        return [
            tool
            for tool in self._tools.values()
            if await evaluate(self.filter, context, tool)
        ]

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def __iter__(self):
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
