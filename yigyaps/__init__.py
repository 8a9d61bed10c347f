"""YigYaps: an open registry and marketplace for MCP skills."""

__version__ = "0.1.0"
