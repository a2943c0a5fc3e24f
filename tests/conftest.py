import asyncio
import base64
import json

import cv2
import httpx
import numpy as np
import pytest

import artifact_store

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00"


class BackendStub:
    """Stands in for the Imagen predict endpoint and records what it was sent."""

    def __init__(self, payload=None, status=200, error=None, delay=None):
        self.payload = payload
        self.status = status
        self.error = error
        self.delay = delay
        self.requests = []
        self.active = 0
        self.peak = 0

    def _respond(self, request: httpx.Request) -> httpx.Response:
        if self.error is not None:
            raise self.error(f"stubbed {self.error.__name__}", request=request)
        body = self.payload if isinstance(self.payload, str) else json.dumps(self.payload)
        return httpx.Response(self.status, text=body)

    async def _respond_later(self, request: httpx.Request) -> httpx.Response:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return self._respond(request)

    def handler(self, request: httpx.Request):
        self.requests.append(request)
        if self.delay is not None:
            return self._respond_later(request)
        return self._respond(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def prediction_payload(data: bytes, mime_type: str = "image/png") -> dict:
    return {
        "predictions": [
            {"mimeType": mime_type, "bytesBase64Encoded": base64.b64encode(data).decode("ascii")}
        ]
    }


def encode_png(size: int = 8) -> bytes:
    img = np.zeros((size, size, 3), dtype=np.uint8)
    img[:, :, 2] = 255
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("BASE_URL", raising=False)
    monkeypatch.delenv("IMAGEN3_MCP_TIMEOUT", raising=False)
    monkeypatch.delenv("IMAGEN3_MCP_MAX_CONCURRENT", raising=False)
    monkeypatch.setenv("IMAGEN3_MCP_DATA_DIR", str(tmp_path / "appdata"))


@pytest.fixture
def store(tmp_path):
    return artifact_store.ensure_ready(tmp_path / "data")


@pytest.fixture
def png_bytes():
    return encode_png()
