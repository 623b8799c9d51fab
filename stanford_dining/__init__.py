"""MCP tools for querying Stanford dining hall menus."""

__version__ = "0.1.0"
