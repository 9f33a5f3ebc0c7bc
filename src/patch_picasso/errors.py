# src/patch_picasso/errors.py
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    UPSTREAM_API = "upstream-api"
    GENERATION_PARSE = "generation-parse"
    PUBLICATION = "publication"


class PatchPicassoError(Exception):
    """Base error for the action. `kind` tells callers which stage failed."""
    kind: ErrorKind = ErrorKind.UPSTREAM_API


class ConfigurationError(PatchPicassoError):
    """Missing secret or unresolvable repository / PR identity."""
    kind = ErrorKind.CONFIGURATION


class UpstreamAPIError(PatchPicassoError):
    """
    Raised for non-2xx responses (or transport failures) from GitHub, the
    text-generation call or the image call.
    """
    kind = ErrorKind.UPSTREAM_API

    def __init__(self, method: str, url: str, status_code: Optional[int] = None,
                 reason: str = "", body: str = ""):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.body = body
        status = status_code if status_code is not None else "no response"
        message = f"{method} {url} failed: {status} {reason}".rstrip()
        if body:
            message = f"{message} - {body}"
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class GenerationParseError(PatchPicassoError):
    """The text model's output could not be read as the expected JSON object."""
    kind = ErrorKind.GENERATION_PARSE


class PublicationError(PatchPicassoError):
    """The base64 image could not be committed to the repository."""
    kind = ErrorKind.PUBLICATION
