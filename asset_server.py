"""HTTP surface for generated images.

``GET /images/<name>`` serves files from the artifact store's images
directory and ``GET /list-images`` returns the current filenames as JSON.
The server knows nothing about tool calls; it only reflects what is on disk
at request time.
"""

import asyncio
import logging
import socket
import sys
from pathlib import Path
from typing import List, Union

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import artifact_store
from errors import StoreIoError

logger = logging.getLogger(__name__)

STARTUP_POLL_SECONDS = 0.05


def create_app(base_path: Union[str, Path]) -> FastAPI:
    app = FastAPI(title="imagen3-mcp assets", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # plain def: the directory scan blocks, so FastAPI runs it in its threadpool
    @app.get("/list-images")
    def list_images() -> List[str]:
        try:
            return artifact_store.list_images(base_path)
        except StoreIoError as exc:
            logger.warning("Listing images failed: %s", exc)
            raise HTTPException(status_code=404, detail="Not Found") from exc

    # StaticFiles answers 404 for missing names, directories and anything
    # resolving outside the images directory.
    app.mount(
        "/images",
        StaticFiles(directory=artifact_store.images_dir(base_path)),
        name="images",
    )
    return app


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket up front.

    Left to itself uvicorn calls ``sys.exit`` from inside its task when the
    port is taken; binding here turns that into an ``OSError`` in the caller.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        if sys.platform != "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def build_http_server(base_path: Union[str, Path], host: str, port: int) -> uvicorn.Server:
    # access_log off and log_config None: uvicorn must never print to stdout
    cfg = uvicorn.Config(
        create_app(base_path),
        host=host,
        port=port,
        log_config=None,
        access_log=False,
        lifespan="off",
    )
    return uvicorn.Server(cfg)


async def wait_until_started(server: uvicorn.Server, task: "asyncio.Task[None]") -> None:
    """Return once ``server`` is accepting connections.

    If the serving task ends first its exception is re-raised here.
    """
    while not server.started:
        if task.done():
            task.result()
            raise RuntimeError("HTTP server stopped before it started listening")
        await asyncio.sleep(STARTUP_POLL_SECONDS)
    logger.info("Serving images on http://%s:%s", server.config.host, server.config.port)
