"""CLI entry point — command definitions using Click.

Commands:
    serve      Run the MCP server over stdio
    init       Generate a template config file
    tools      List the available tools
    prompts    List the available prompts
    call       Run one tool and print its result
    prompt     Render one prompt
"""

import json
import sys

import click
from dotenv import load_dotenv

# Load .env before anything reads SONARQUBE_* variables
load_dotenv()

from sonar_mcp import __version__  # noqa: E402
from sonar_mcp.logging import configure_logging  # noqa: E402


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_client(ctx: click.Context):
    """Load config and return a ready SonarClient. Exits on error."""
    from sonar_mcp.client import SonarClient
    from sonar_mcp.config import load
    from sonar_mcp.errors import ConfigError

    try:
        config = load(ctx.obj["config_path"])
        return SonarClient.from_config(config)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _parse_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """Turn ``("projectKey=x", "maxIssues=5")`` into a dict."""
    parsed: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'")
        parsed[key] = value
    return parsed


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=None,
              help="Path to a YAML configuration file (default: ./sonar-mcp.yaml if present).")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable debug logging on stderr.")
@click.version_option(__version__, prog_name="sonar-mcp")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """SonarQube MCP server — read-only code-quality tools for AI assistants."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------

@cli.command("serve")
@click.pass_context
def serve_command(ctx: click.Context) -> None:
    """Start the MCP server on stdio."""
    from sonar_mcp.server import run_server

    client = _make_client(ctx)
    run_server(client)


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="sonar-mcp.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template sonar-mcp.yaml file."""
    from sonar_mcp.config import generate_template
    from sonar_mcp.errors import ConfigError

    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your server URL and token.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# tools / prompts listings
# ---------------------------------------------------------------------------

@cli.command("tools")
def tools_command() -> None:
    """List the available tools."""
    from sonar_mcp.tools import COMMANDS

    for cmd in COMMANDS.values():
        click.echo(f"{cmd.name:<26} {cmd.description}")


@cli.command("prompts")
def prompts_command() -> None:
    """List the available prompts."""
    from sonar_mcp.prompts import PROMPTS

    for p in PROMPTS.values():
        click.echo(f"{p.name:<26} {p.description}")


# ---------------------------------------------------------------------------
# call
# ---------------------------------------------------------------------------

@cli.command("call")
@click.argument("tool")
@click.option("--args", "raw_args", default="{}", show_default=True,
              help="Tool arguments as a JSON object.")
@click.pass_context
def call_command(ctx: click.Context, tool: str, raw_args: str) -> None:
    """Run TOOL once and print its result (exit 1 on error)."""
    from sonar_mcp.tools import run_command

    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    client = _make_client(ctx)
    envelope = run_command(client, tool, arguments)
    for item in envelope["content"]:
        click.echo(item["text"], err=envelope.get("isError", False))
    if envelope.get("isError"):
        sys.exit(1)


# ---------------------------------------------------------------------------
# prompt
# ---------------------------------------------------------------------------

@cli.command("prompt")
@click.argument("name")
@click.argument("pairs", nargs=-1)
def prompt_command(name: str, pairs: tuple[str, ...]) -> None:
    """Render prompt NAME with KEY=VALUE arguments."""
    from sonar_mcp.prompts import PromptArgumentError, render_prompt

    try:
        click.echo(render_prompt(name, _parse_pairs(pairs)))
    except PromptArgumentError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
