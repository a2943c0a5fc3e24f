import asyncio
import contextlib
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

import artifact_store
import asset_server
import config
from errors import ConfigError, ImagenError, StoreIoError
from imagen_client import generate_image_file
from prompt_guide import INSTRUCTIONS

logger = logging.getLogger(__name__)

GENERATE_IMAGE_TOOL = Tool(
    name="generate_image",
    description=(
        "Generate an image based on a prompt. Returns an image URL that can be used "
        "in markdown format like ![description](URL) to display the image"
    ),
    inputSchema={
        "type": "object",
        "required": ["prompt"],
        "properties": {
            "prompt": {
                "type": "string",
                "description": "The prompt text for image generation. The prompt MUST be in English.",
            }
        },
    },
)


def image_url(host: str, port: int, filename: str) -> str:
    return f"http://{host}:{port}/images/{filename}"


async def generate_image(
    prompt: str,
    base_path: Union[str, Path],
    host: str = config.HTTP_HOST,
    port: int = config.HTTP_PORT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Run one generation and describe the outcome for the host.

    Business failures come back as text so the calling agent can relay or
    retry; they never fault the MCP exchange.
    """
    try:
        filename = await generate_image_file(prompt, base_path, transport=transport)
    except ImagenError as exc:
        logger.error("Error generating image: %s", exc)
        return f"Error generating image: {exc}"
    return image_url(host, port, filename)


def build_server(
    base_path: Union[str, Path],
    host: str = config.HTTP_HOST,
    port: int = config.HTTP_PORT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Server:
    server = Server(config.SERVER_NAME, version=config.SERVER_VERSION, instructions=INSTRUCTIONS)
    limiter = asyncio.Semaphore(config.get_max_concurrent())

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return [GENERATE_IMAGE_TOOL]

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        if name != GENERATE_IMAGE_TOOL.name:
            raise ValueError(f"Unknown tool: {name}")
        prompt = (arguments or {}).get("prompt")
        if not isinstance(prompt, str):
            raise ValueError("'prompt' must be a string")
        async with limiter:
            text = await generate_image(prompt, base_path, host, port, transport=transport)
        return [TextContent(type="text", text=text)]

    return server


async def run_protocol_server(server: Server) -> None:
    """Serve MCP over stdin/stdout until the host closes the stream."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
    logger.info("MCP session closed")


async def serve(
    base_path: Union[str, Path],
    host: str = config.HTTP_HOST,
    port: int = config.HTTP_PORT,
) -> None:
    sock = asset_server.bind_socket(host, port)
    http_server = asset_server.build_http_server(base_path, host, port)
    http_task = asyncio.create_task(http_server.serve(sockets=[sock]), name="asset-http")
    try:
        await asset_server.wait_until_started(http_server, http_task)
        await run_protocol_server(build_server(base_path, host, port))
    finally:
        # the HTTP server lives only as long as the MCP session; no drain
        http_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await http_task
        sock.close()


def main() -> int:
    config.configure_logging()
    try:
        base_path = artifact_store.ensure_ready()
    except StoreIoError as exc:
        logger.error("Error: %s", exc)
        return 1

    try:
        config.require_api_key()
    except ConfigError:
        logger.error(
            "Error: %s environment variable is not set. Image generation will fail.",
            config.API_KEY_ENV,
        )
        return 1

    try:
        asyncio.run(serve(base_path))
    except OSError as exc:
        logger.error("Error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
