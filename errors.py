"""Failures raised while generating and storing images.

Everything here derives from ``ImagenError`` so the tool boundary can turn
any of them into a message for the host with a single ``except`` clause.
"""


class ImagenError(Exception):
    """Base class for every business failure."""


class ConfigError(ImagenError):
    """A required setting (the backend credential) is missing."""


class BackendHttpError(ImagenError):
    """The generation backend could not be reached."""


class BackendTimeoutError(ImagenError):
    """The generation backend did not answer within the configured timeout."""


class BackendParseError(ImagenError):
    def __init__(self, reason: str, raw_body: str):
        super().__init__(f"Failed to parse Gemini response: {reason}\nThe response was: {raw_body}")
        self.reason = reason
        self.raw_body = raw_body


class EmptyResultError(ImagenError):
    """The backend answered with zero predictions."""


class DecodeError(ImagenError):
    """The prediction payload was not valid base64."""


class StoreIoError(ImagenError):
    """A directory or file in the artifact store could not be created, read or written."""
