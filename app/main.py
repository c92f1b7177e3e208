import logging
import re
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import FormData

from .config import Settings, get_settings
from .errors import (
    ConfigurationError,
    GenerationError,
    TransportError,
    UpstreamContentError,
    UpstreamFormatError,
    generation_error_handler,
)
from .schemas import ConfigResponse, ErrorResponse, GenerateResponse

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = "16:9"
FALLBACK_PROMPT = "Generate an image."
CHAT_COMPLETIONS_PATH = "/chat/completions"

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def compose_prompt(prompt: str, style: str = "", quality: str = "") -> str:
    parts: list[str] = []
    if prompt:
        parts.append(prompt)
    if style:
        parts.append(f"Style: {style}")
    if quality:
        parts.append(f"Quality: {quality}")
    return "\n\n".join(parts) or FALLBACK_PROMPT


def build_payload(model: str, prompt_text: str, aspect: str = "") -> dict[str, Any]:
    return {
        "model": model,
        "messages": [{"role": "user", "content": prompt_text}],
        "modalities": ["image", "text"],
        "image_config": {"aspect_ratio": aspect or DEFAULT_ASPECT_RATIO},
    }


def resolve_endpoint(base_url: str) -> str:
    if base_url.endswith(CHAT_COMPLETIONS_PATH):
        return base_url
    return f"{base_url.removesuffix('/')}{CHAT_COMPLETIONS_PATH}"


def extract_image_url(data: Any) -> str | None:
    """Return ``choices[0].message.images[0].image_url.url`` or None.

    Any shape mismatch counts as "no image"; the caller reports it together
    with the raw body.
    """
    try:
        choices = data.get("choices") or []
        message = (choices[0] if choices else {}).get("message") or {}
        images = message.get("images") or []
        url = ((images[0] if images else {}).get("image_url") or {}).get("url")
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        logger.debug("Unexpected AI backend response shape: %r", exc)
        return None
    if not isinstance(url, str) or not url:
        return None
    return url


def normalize_image_url(image_url: str) -> str:
    if image_url.startswith("data:") or _ABSOLUTE_URL.match(image_url):
        return image_url
    return f"data:image/png;base64,{image_url}"


async def _generate_with_backend(settings: Settings, payload: dict[str, Any]) -> tuple[str, int]:
    async with httpx.AsyncClient(timeout=settings.timeout_seconds) as client:
        response = await client.post(
            resolve_endpoint(settings.base_url),
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )

    content_type = response.headers.get("content-type", "").lower()
    if "application/json" not in content_type:
        logger.error("AI backend returned non-JSON response: %s", response.text)
        raise UpstreamFormatError("Upstream returned non-JSON", raw=response.text)

    data = response.json()
    image_url = extract_image_url(data)
    if not image_url:
        raise UpstreamContentError("No image returned from AI backend", raw=data)

    return normalize_image_url(image_url), response.status_code


def _form_text(form: FormData, name: str) -> str:
    # File parts and absent fields both read as empty text.
    value = form.get(name)
    return value if isinstance(value, str) else ""


@asynccontextmanager
async def lifespan(_: FastAPI):
    load_dotenv()
    yield


app = FastAPI(title="Image Generation Proxy", lifespan=lifespan)
app.add_exception_handler(GenerationError, generation_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/config", response_model=ConfigResponse)
async def get_config(settings: Settings = Depends(get_settings)) -> ConfigResponse:
    return ConfigResponse(
        configured=settings.is_configured,
        model=settings.model,
        defaultAspect=DEFAULT_ASPECT_RATIO,
    )



@app.post(
    "/api/generate",
    response_model=GenerateResponse,
    responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def generate_image(request: Request, settings: Settings = Depends(get_settings)) -> JSONResponse:
    if not settings.is_configured:
        raise ConfigurationError("AI_BASE_URL or AI_API_KEY not configured")

    try:
        form = await request.form()
        prompt_text = compose_prompt(
            _form_text(form, "prompt"),
            _form_text(form, "style"),
            _form_text(form, "quality"),
        )
        payload = build_payload(settings.model, prompt_text, _form_text(form, "aspect"))
        image_url, status_code = await _generate_with_backend(settings, payload)
    except GenerationError:
        raise
    except Exception as exc:
        logger.exception("Image generation request failed")
        raise TransportError("Upstream request failed") from exc

    return JSONResponse(
        status_code=status_code,
        content=GenerateResponse(imageUrl=image_url).model_dump(),
    )
