from sonar_mcp.cli import cli

cli()
