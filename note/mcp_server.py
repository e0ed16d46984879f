#!/usr/bin/env python3
"""MCP server for note.com: exposes profile, article and comment lookups as MCP tools.

The server uses FastMCP for the transport layer. The tool functions are plain
Python returning JSON text and can be tested without FastMCP installed.

Usage:
    python3 mcp_server.py          # serve on stdio
"""

import json
import logging
from typing import Any, Callable, Optional

from note_client import NoteClient, NoteError

logger = logging.getLogger(__name__)

SERVER_NAME = "note-mcp-server"

_client: Optional[NoteClient] = None


def _get_client() -> NoteClient:
    global _client
    if _client is None:
        _client = NoteClient()
    return _client


def _run_tool(fetch: Callable[[NoteClient], Any]) -> str:
    """Run a client call and return its result as pretty JSON, or an error line."""
    try:
        result = fetch(_get_client())
    except NoteError as e:
        logger.info(f"Tool call failed: {e}")
        return f"Error: {e}"
    return json.dumps(result, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Core tool functions (no FastMCP dependency)
# ---------------------------------------------------------------------------


def tool_get_user_profile(username: str) -> str:
    return _run_tool(lambda client: client.get_user_profile(username))


def tool_get_user_articles(username: str, page: int = 1) -> str:
    return _run_tool(lambda client: client.get_user_articles(username, page=page))


def tool_get_article(note_id: str) -> str:
    return _run_tool(lambda client: client.get_article(note_id))


def tool_get_article_comments(note_id: str) -> str:
    return _run_tool(lambda client: client.get_article_comments(note_id))


# ---------------------------------------------------------------------------
# FastMCP server factory
# ---------------------------------------------------------------------------


def create_mcp_server():
    """Create and return a FastMCP server with the note.com tools registered.

    Raises ImportError if fastmcp is not installed.
    """
    from fastmcp import FastMCP

    mcp = FastMCP(SERVER_NAME, instructions="MCP server for note.com (unofficial API)")

    @mcp.tool()
    def get_user_profile(username: str) -> str:
        """Get a user's profile information from note.com.

        username is the urlname of the note.com user.
        """
        return tool_get_user_profile(username)

    @mcp.tool()
    def get_user_articles(username: str, page: int = 1) -> str:
        """Get a list of articles from a note.com user.

        page defaults to 1.
        """
        return tool_get_user_articles(username, page)

    @mcp.tool()
    def get_article(note_id: str) -> str:
        """Get the full content of an article from note.com.

        note_id is the note key (e.g. 'n5829f47dd4da'); use the 'key' field
        from get_user_articles results.
        """
        return tool_get_article(note_id)

    @mcp.tool()
    def get_article_comments(note_id: str) -> str:
        """Get the comment tree of a note.com article, with text as markdown."""
        return tool_get_article_comments(note_id)

    return mcp


def run_server() -> None:
    """Entry point: create and run the MCP server (stdio transport)."""
    mcp = create_mcp_server()
    mcp.run()


if __name__ == "__main__":
    run_server()
