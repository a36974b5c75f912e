"""
Layered Comic — Resilient generation client.

Generates one image asset per call via the Hugging Face inference API and
hands back a self-contained data URI, so nothing downstream needs the network
again to draw it.

Per request:
    ATTEMPT(n) --2xx--------------------------------> DONE(asset)
    ATTEMPT(n) --resource exhaustion, n < max-------> WAIT(backoff) -> ATTEMPT(n+1)
    ATTEMPT(n) --resource exhaustion, n == max------> FAILED(ServiceUnavailable)
    ATTEMPT(n) --anything else----------------------> FAILED(specific error)

Resource exhaustion (the model host running out of accelerator memory) is
the only retried condition. Detecting it lives in classify_failure() alone.
Failures come back as GenerationResult values; nothing is raised to the
caller for upstream trouble.
"""

import asyncio
import base64
import json
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import httpx

from layered_comic.config import GenerationContext, get_default_context
from layered_comic.errors import (
    ApiError,
    GenerationResult,
    generation_failed,
    invalid_credential,
    missing_credential,
    request_timeout,
    service_busy,
    service_unavailable,
)
from layered_comic.models import (
    DEFAULT_MODEL,
    DEFAULT_STYLE,
    IMAGE_MODELS,
    ElementType,
    ImageModel,
    StylePreset,
)
from layered_comic.prompt_composer import compose

logger = logging.getLogger(__name__)

# Attempts in total, not retries after the first
MAX_ATTEMPTS = 3
# Fixed pause between attempts, seconds
BACKOFF_SECONDS = 2.0

# Lower-cased substrings that mark a transient out-of-memory failure
RESOURCE_EXHAUSTION_MARKERS = ("out of memory",)

DEFAULT_CONTENT_TYPE = "image/jpeg"


class FailureKind(Enum):
    RESOURCE_EXHAUSTED = "resource_exhausted"   # Retry
    INVALID_CREDENTIAL = "invalid_credential"
    TIMEOUT = "timeout"
    BUSY = "busy"
    OTHER = "other"


# ============================================================
# Failure classification
# ============================================================

def _diagnostic_messages(body: bytes) -> list[str]:
    """Warning/error strings from a JSON error body; [] if it isn't one."""
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return []
    if not isinstance(data, dict):
        return []

    messages = []
    for key in ("warnings", "error"):
        value = data.get(key)
        if isinstance(value, str):
            messages.append(value)
        elif isinstance(value, list):
            messages.extend(v for v in value if isinstance(v, str))
    return messages


def is_resource_exhausted(body: bytes) -> bool:
    return any(
        marker in message.lower()
        for message in _diagnostic_messages(body)
        for marker in RESOURCE_EXHAUSTION_MARKERS
    )


def classify_failure(status_code: int, body: bytes) -> FailureKind:
    """Map a non-2xx upstream response to a failure kind."""
    if status_code >= 500 and is_resource_exhausted(body):
        return FailureKind.RESOURCE_EXHAUSTED
    if status_code == 401:
        return FailureKind.INVALID_CREDENTIAL
    if status_code == 408:
        return FailureKind.TIMEOUT
    if status_code == 503:
        return FailureKind.BUSY
    return FailureKind.OTHER


def _body_text(body: bytes, limit: int = 500) -> str:
    return body.decode("utf-8", errors="replace")[:limit]


def error_for_response(kind: FailureKind, status_code: int, body: bytes) -> ApiError:
    """Terminal error for a classified response."""
    if kind is FailureKind.INVALID_CREDENTIAL:
        return invalid_credential()
    if kind is FailureKind.TIMEOUT:
        return request_timeout()
    if kind is FailureKind.BUSY:
        return service_busy()
    detail = _body_text(body) or "An unexpected error occurred while generating."
    return generation_failed(detail, status_code)


def error_for_transport(exc: httpx.HTTPError) -> ApiError:
    """Terminal error for a request that never got a response."""
    if isinstance(exc, httpx.TimeoutException):
        return request_timeout()
    return generation_failed(f"Network error: {exc}")


# ============================================================
# Request building
# ============================================================

@dataclass
class GenerationOptions:
    """Caller-selected knobs for one image request."""
    model: ImageModel = DEFAULT_MODEL
    style: StylePreset = DEFAULT_STYLE
    negative_prompt: Optional[str] = None
    guidance_scale: float = 7.5
    steps: int = 50
    width: int = 512
    height: int = 512
    seed: Optional[int] = None    # Random per request when omitted


def build_image_payload(
    description: str,
    element_type: ElementType,
    options: GenerationOptions,
) -> dict:
    prompt, negative = compose(
        description, element_type, options.style, options.negative_prompt
    )
    seed = options.seed if options.seed is not None else random.randint(0, 2**32 - 1)
    return {
        "inputs": prompt,
        "parameters": {
            "negative_prompt": negative,
            "guidance_scale": options.guidance_scale,
            "num_inference_steps": options.steps,
            "width": options.width,
            "height": options.height,
            "seed": seed,
        },
    }


def auth_headers(context: GenerationContext) -> dict:
    return {
        "Authorization": f"Bearer {context.api_token}",
        "Content-Type": "application/json",
    }


def to_data_uri(content: bytes, content_type: str = "") -> str:
    """Embed a binary image as a data URI."""
    mime = content_type.split(";")[0].strip().lower()
    if not mime.startswith("image/"):
        mime = DEFAULT_CONTENT_TYPE
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


# ============================================================
# Client
# ============================================================

class GenerationClient:
    """Generates element images, retrying only on resource exhaustion."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_seconds: float = BACKOFF_SECONDS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if backoff_seconds <= 0:
            raise ValueError("backoff_seconds must be positive")
        self._client = http_client
        self._transport = transport
        self._sleep = sleep
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def generate_element(
        self,
        description: str,
        element_type: Union[ElementType, str] = ElementType.CHARACTER,
        options: Optional[GenerationOptions] = None,
        context: Optional[GenerationContext] = None,
    ) -> GenerationResult:
        """
        Generate one asset image.

        Args:
            description: What to draw (e.g. "a knight in silver armour")
            element_type: character, prop or background
            options: Model/style/sampler settings (defaults when omitted)
            context: Credential and endpoint; the process default when omitted

        Returns:
            GenerationResult whose data is a data URI, or whose error says why not
        """
        context = context or get_default_context()
        if not context.has_credential:
            logger.error("No API token configured, not sending generation request")
            return GenerationResult.failure(missing_credential())

        element_type = ElementType(element_type)
        options = options or GenerationOptions()
        url = f"{context.base_url}/{IMAGE_MODELS[options.model]}"
        payload = build_image_payload(description, element_type, options)
        headers = auth_headers(context)

        logger.info(
            f"Generating {element_type.value} with {IMAGE_MODELS[options.model]}: "
            f"{payload['inputs'][:80]}..."
        )

        client = await self._get_client()
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await client.post(
                    url, headers=headers, json=payload, timeout=context.image_timeout
                )
            except httpx.HTTPError as e:
                error = error_for_transport(e)
                logger.error(f"Generation request failed (attempt {attempt}): {error}")
                return GenerationResult.failure(error)

            if response.is_success:
                return self._asset_from(response)

            kind = classify_failure(response.status_code, response.content)
            if kind is not FailureKind.RESOURCE_EXHAUSTED:
                error = error_for_response(kind, response.status_code, response.content)
                logger.error(f"Generation failed (attempt {attempt}): {error}")
                return GenerationResult.failure(error)

            logger.warning(
                f"Model out of resources (attempt {attempt}/{self.max_attempts})"
            )
            if attempt < self.max_attempts:
                logger.info(f"Retrying in {self.backoff_seconds:.1f}s...")
                await self._sleep(self.backoff_seconds)

        logger.error(f"Giving up after {self.max_attempts} attempts")
        return GenerationResult.failure(service_unavailable(self.max_attempts))

    def _asset_from(self, response: httpx.Response) -> GenerationResult:
        if not response.content:
            return GenerationResult.failure(
                generation_failed(
                    "The image generation service did not return any data.",
                    response.status_code,
                )
            )
        data_uri = to_data_uri(response.content, response.headers.get("content-type", ""))
        logger.info(f"Image received ({len(response.content)} bytes)")
        return GenerationResult.success(data_uri)
