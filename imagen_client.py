import asyncio
import base64
import binascii
import logging
import secrets
import time
from pathlib import Path
from typing import List, Optional, Union

import httpx
from pydantic import BaseModel, Field, ValidationError

import artifact_store
import config
from errors import (
    BackendHttpError,
    BackendParseError,
    BackendTimeoutError,
    DecodeError,
    EmptyResultError,
)

logger = logging.getLogger(__name__)

ID_ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
ID_LENGTH = 10


class ImagenInstance(BaseModel):
    prompt: str


class ImagenParameters(BaseModel):
    sample_count: int = Field(1, alias="sampleCount")

    model_config = {"populate_by_name": True}


class ImagenRequest(BaseModel):
    instances: List[ImagenInstance]
    parameters: ImagenParameters


class ImagenPrediction(BaseModel):
    mime_type: str = Field(alias="mimeType")
    bytes_base64_encoded: str = Field(alias="bytesBase64Encoded")


class ImagenResponse(BaseModel):
    predictions: List[ImagenPrediction]


def random_id(length: int = ID_LENGTH) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def new_filename() -> str:
    """``{random_id}_{YYYYMMDDHHMMSS}.png``"""
    return f"{random_id()}_{time.strftime('%Y%m%d%H%M%S')}.png"


def build_request(prompt: str) -> ImagenRequest:
    # one image per call
    return ImagenRequest(
        instances=[ImagenInstance(prompt=prompt)],
        parameters=ImagenParameters(sample_count=1),
    )


def parse_response(raw_body: str) -> ImagenResponse:
    try:
        return ImagenResponse.model_validate_json(raw_body)
    except ValidationError as exc:
        raise BackendParseError(str(exc), raw_body) from exc


def decode_first_prediction(response: ImagenResponse) -> bytes:
    if not response.predictions:
        raise EmptyResultError("No images were generated")
    prediction = response.predictions[0]
    try:
        return base64.b64decode(prediction.bytes_base64_encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 image data: {exc}") from exc


async def _post_predict(
    request: ImagenRequest,
    api_key: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    url = config.get_base_url().rstrip("/") + config.PREDICT_PATH
    timeout = config.get_request_timeout()
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        try:
            # httpx limits each network phase; wait_for bounds the whole call
            response = await asyncio.wait_for(
                client.post(
                    url,
                    params={"key": api_key},
                    json=request.model_dump(by_alias=True),
                ),
                timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise BackendTimeoutError(f"Gemini request timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            # str(exc) may embed the request URL, which carries the key
            raise BackendHttpError(f"Gemini request failed: {type(exc).__name__}") from exc
    if response.is_error:
        logger.warning("Gemini responded with HTTP %s", response.status_code)
    return response.text


async def generate_image_file(
    prompt: str,
    base_path: Union[str, Path],
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Generate one image for ``prompt`` and store it; return the new filename.

    Nothing is written unless the backend response was fully validated and
    decoded. ``transport`` lets callers swap the network layer (tests use
    ``httpx.MockTransport``).
    """
    filename = new_filename()
    api_key = config.require_api_key()

    request = build_request(prompt)
    logger.info("Requesting image for prompt (%d chars) as %s", len(prompt), filename)
    raw_body = await _post_predict(request, api_key, transport=transport)

    data = decode_first_prediction(parse_response(raw_body))
    artifact_store.write_image(base_path, filename, data)
    return filename
