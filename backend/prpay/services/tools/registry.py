"""
Tool Registry - the set of capabilities exposed to one agent session

Each session builds its own registry (payments-only sessions and full
sessions expose different tools), so this is a plain class rather than a
process-wide singleton. Once an agent takes a registry it is frozen and
cannot change for the rest of the conversation.
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional
import logging

from prpay.core.exceptions import ConfigurationError
from prpay.services.tools.schema import ToolSpec

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of tool specs keyed by name.

    Usage:
        registry = ToolRegistry(build_table_tools(store))
        registry.register(build_payment_tool(payment_backend))

        spec = registry.lookup("read_table")
        openai_tools = registry.get_openai_tools_spec()
    """

    def __init__(self, specs: Iterable[ToolSpec] = ()):
        self._tools: Dict[str, ToolSpec] = {}
        self._frozen = False
        for spec in specs:
            self.register(spec)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, spec: ToolSpec) -> None:
        """
        Register a tool spec.

        Raises:
            ConfigurationError: if the name is already taken or the registry is frozen
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register tool '{spec.name}': registry is read-only once a session has started"
            )
        if spec.name in self._tools:
            raise ConfigurationError(f"Duplicate tool name: {spec.name}")
        self._tools[spec.name] = spec
        logger.debug(f"Registered tool: {spec.name}")

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    def lookup(self, name: str) -> Optional[ToolSpec]:
        """Get a registered tool by name, or None if it is not registered"""
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def get_openai_tools_spec(self) -> List[Dict[str, Any]]:
        """
        Get all tools in OpenAI function calling format.

        Returns a list suitable for passing to the OpenAI API's `tools` parameter.
        """
        return [spec.tool_schema.to_openai_format() for spec in self._tools.values()]

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
