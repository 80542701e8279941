"""MCP server exposing the SonarQube / SonarCloud Web API as read-only tools."""

__version__ = "1.0.0"
