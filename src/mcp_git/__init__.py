"""MCP server for GitLab and GitHub APIs."""

import asyncio
import logging
import os
import sys

import click
from dotenv import load_dotenv


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="stdio",
    help="MCP transport type",
)
@click.option("--port", default=8000, help="Port for HTTP transports")
@click.option("--host", default="127.0.0.1", help="Host for HTTP transports")
@click.option(
    "--provider",
    type=click.Choice(["gitlab", "github"]),
    envvar="GIT_PROVIDER",
    help="Hosting platform",
)
@click.option("--api-url", envvar="GIT_API_URL", help="REST API root URL")
@click.option("--token", envvar="GIT_TOKEN", help="Personal access token")
@click.option("--read-only", is_flag=True, help="Disable write operations")
@click.option("--tool-filter", envvar="GIT_TOOL_FILTER", help="Regex of tool names to expose")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    envvar="LOG_LEVEL",
    default="INFO",
    help="Logging level",
)
def main(
    transport: str,
    port: int,
    host: str,
    provider: str | None,
    api_url: str | None,
    token: str | None,
    read_only: bool,
    tool_filter: str | None,
    log_level: str,
) -> None:
    """Run the Git MCP server."""
    load_dotenv()

    if provider:
        os.environ["GIT_PROVIDER"] = provider
    if api_url:
        os.environ["GIT_API_URL"] = api_url
    if token:
        os.environ["GIT_TOKEN"] = token
    if read_only:
        os.environ["GIT_READ_ONLY"] = "true"

    # stdout belongs to the stdio transport
    logging.basicConfig(
        stream=sys.stderr,
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from .servers.git import apply_tool_filter, mcp

    if tool_filter:
        asyncio.run(apply_tool_filter(mcp, tool_filter))

    run_kwargs: dict = {"transport": transport}
    if transport != "stdio":
        run_kwargs["host"] = host
        run_kwargs["port"] = port

    asyncio.run(mcp.run_async(show_banner=False, **run_kwargs))


if __name__ == "__main__":
    main()
