"""Tools the chat models may invoke mid-turn.

Each tool is a plain function taking its model-supplied arguments plus the
clients injected by the registry. ``TOOLS`` carries the JSON schema exposed to
the vendors.
"""
from typing import Any, Dict

from tavily import TavilyClient

SEARCH_MAX_RESULTS = 5


def web_search(query: str, search_client: TavilyClient) -> Dict[str, Any]:
    """
    Search the web via Tavily.

    Tool: web_search
    Returns: {"answer": str | None, "results": [{"title", "url", "content"}]}
    """
    response = search_client.search(
        query,
        search_depth="advanced",
        max_results=SEARCH_MAX_RESULTS,
        include_answer=True,
    )
    return {
        "answer": response.get("answer"),
        "results": [
            {
                "title": result.get("title"),
                "url": result.get("url"),
                "content": result.get("content"),
            }
            for result in response.get("results") or []
        ],
    }


TOOLS = {
    "web_search": {
        "name": "web_search",
        "description": (
            "Search the web for current information, news, facts, or any information "
            "not in your knowledge base. Use this when you need up-to-date or specific "
            "information."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to find relevant information",
                },
            },
            "required": ["query"],
        },
    },
}
