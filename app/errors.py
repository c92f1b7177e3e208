from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from .schemas import ErrorResponse

_NO_RAW = object()


class GenerationError(Exception):
    """Base for failures reported to the caller as ``{"error", "raw"?}`` JSON."""

    status_code = 502

    def __init__(self, message: str, raw: Any = _NO_RAW) -> None:
        super().__init__(message)
        self.message = message
        self.raw = raw

    @property
    def has_raw(self) -> bool:
        return self.raw is not _NO_RAW


class ConfigurationError(GenerationError):
    status_code = 500


class UpstreamFormatError(GenerationError):
    """The backend answered with something other than JSON."""


class UpstreamContentError(GenerationError):
    """The backend answered with JSON that carries no image."""


class TransportError(GenerationError):
    pass


async def generation_error_handler(_: Request, exc: GenerationError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, raw=exc.raw if exc.has_raw else None)
    exclude = None if exc.has_raw else {"raw"}
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude=exclude))
