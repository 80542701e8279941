"""MCP server wiring for sonar-mcp.

Publishes the tool registry (``tools/list``, ``tools/call``) and the prompt
registry (``prompts/list``, ``prompts/get``) over the stdio transport. All
SonarQube access goes through the single ``SonarClient`` built at start-up.
"""

import asyncio
from typing import Any

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from sonar_mcp import __version__
from sonar_mcp.client import SonarClient
from sonar_mcp.logging import logger
from sonar_mcp.prompts import PROMPTS, render_prompt
from sonar_mcp.tools import COMMANDS, run_command

SERVER_NAME = "sonar-mcp"
SERVER_VERSION = __version__


def tool_definitions() -> list[types.Tool]:
    return [
        types.Tool(name=cmd.name, description=cmd.description, inputSchema=cmd.input_schema())
        for cmd in COMMANDS.values()
    ]


def prompt_definitions() -> list[types.Prompt]:
    return [
        types.Prompt(
            name=p.name,
            title=p.title,
            description=p.description,
            arguments=[types.PromptArgument(**spec) for spec in p.argument_specs()],
        )
        for p in PROMPTS.values()
    ]


def envelope_to_result(envelope: dict) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=item["text"]) for item in envelope["content"]],
        isError=envelope.get("isError", False),
    )


def create_server(client: SonarClient) -> Server:
    """Create the MCP server with every tool and prompt registered.

    Args:
        client: Shared SonarQube client; it holds no per-call state.
    """
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_definitions()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        # requests is blocking; keep the event loop free to answer pings
        envelope = await asyncio.to_thread(run_command, client, name, arguments)
        return envelope_to_result(envelope)

    @server.list_prompts()
    async def list_prompts() -> list[types.Prompt]:
        return prompt_definitions()

    @server.get_prompt()
    async def get_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
        text = render_prompt(name, arguments)
        return types.GetPromptResult(
            description=PROMPTS[name].description,
            messages=[
                types.PromptMessage(
                    role="user",
                    content=types.TextContent(type="text", text=text),
                )
            ],
        )

    return server


def _log_banner(client: SonarClient) -> None:
    logger.info("SonarQube MCP server running (read-only) against %s", client.base_url)
    for cmd in COMMANDS.values():
        logger.info("  tool    %s", cmd.name)
    for p in PROMPTS.values():
        logger.info("  prompt  %s", p.name)


async def run_server_async(client: SonarClient) -> None:
    """Serve over stdio until the client closes the stream."""
    server = create_server(client)
    async with stdio_server() as (read_stream, write_stream):
        _log_banner(client)
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )
    logger.info("MCP server shutdown complete")


def run_server(client: SonarClient) -> None:
    """Run the MCP server (blocking)."""
    asyncio.run(run_server_async(client))
