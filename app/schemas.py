from typing import Any

from pydantic import BaseModel


class GenerateResponse(BaseModel):
    imageUrl: str


class ErrorResponse(BaseModel):
    error: str
    raw: Any = None


class ConfigResponse(BaseModel):
    configured: bool
    model: str
    defaultAspect: str
