"""Tech feed reader and local browser-history tools served over MCP."""

__version__ = "0.0.1"
