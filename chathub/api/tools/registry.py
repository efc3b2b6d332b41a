"""Tool registry used by the chat relay to run model-requested tool calls."""
import json
import logging
from typing import Any, Dict, Optional

from tavily import TavilyClient

from chathub.config import settings

from . import search

logger = logging.getLogger(__name__)


class ToolNotConfiguredError(RuntimeError):
    """Raised when a tool needs a credential that is not set."""


class ToolRegistry:
    """
    Registry for model-callable tools.

    The search client is created lazily so a missing TAVILY_API_KEY only
    fails the tool call, not the whole chat turn.
    """

    def __init__(self, search_client: Optional[Any] = None):
        self._search_client = search_client
        self.tools = search.TOOLS

    @property
    def search_client(self) -> Any:
        if self._search_client is None:
            if not settings.TAVILY_API_KEY:
                raise ToolNotConfiguredError("TAVILY_API_KEY is not configured")
            self._search_client = TavilyClient(api_key=settings.TAVILY_API_KEY)
        return self._search_client

    def call_tool(self, tool_name: str, **kwargs: Any) -> Any:
        """
        Call a tool by name.

        Raises:
            ValueError: If tool not found
        """
        if tool_name not in self.tools:
            raise ValueError(f"Tool '{tool_name}' not found")

        tool_func = getattr(search, tool_name)
        kwargs["search_client"] = self.search_client
        return tool_func(**kwargs)

    def execute(self, tool_name: str, arguments: Any) -> Dict[str, Any]:
        """
        Run a tool call and wrap its outcome for the model.

        ``arguments`` may be a JSON string (OpenAI) or a mapping (Gemini).
        Failures never propagate: they come back as ``success: False`` so the
        model can still answer the turn.
        """
        try:
            args = json.loads(arguments or "{}") if isinstance(arguments, str) else dict(arguments or {})
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse tool arguments for {tool_name}: {str(e)}")
            return {"tool_name": tool_name, "error": f"Invalid arguments: {str(e)}", "success": False}

        try:
            result = self.call_tool(tool_name, **args)
        except Exception as e:
            logger.error(f"Tool execution error: tool={tool_name}: {str(e)}")
            return {"tool_name": tool_name, "error": str(e), "success": False}

        logger.debug(f"Tool executed: tool={tool_name}")
        return {"tool_name": tool_name, "result": result, "success": True}

    def get_tool_schemas(self) -> Dict[str, Any]:
        return self.tools

    def openai_tools(self) -> list[Dict[str, Any]]:
        """Tool list in the OpenAI chat-completions format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": schema["name"],
                    "description": schema["description"],
                    "parameters": schema["parameters"],
                },
            }
            for schema in self.tools.values()
        ]
