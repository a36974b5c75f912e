"""
Layered Comic — Script generator.

Asks a hosted text model for a short comic script and trims the reply into
one "Panel N: ..." line per requested panel. Each line later becomes a
panel title (see comic.panels_from_script).
"""

import logging
import re
from typing import Optional, Sequence

import httpx

from layered_comic.config import GenerationContext, get_default_context
from layered_comic.errors import GenerationResult, generation_failed, missing_credential
from layered_comic.generation_client import (
    auth_headers,
    classify_failure,
    error_for_response,
    error_for_transport,
)

logger = logging.getLogger(__name__)

SCRIPT_MODEL = "gpt2"

# Reply length per panel, in tokens
TOKENS_PER_PANEL = 50

SENTENCE_END = re.compile(r"[.!?]")


def build_script_prompt(
    prompt: str,
    panel_count: int,
    characters: Sequence[str] = (),
    tone: str = "adventure",
) -> str:
    text = f"Write a {panel_count}-panel comic script about {prompt}."
    if characters:
        text += f" Include these characters: {', '.join(characters)}."
    text += f" The tone should be {tone}."
    text += " Each panel should be a clear, descriptive sentence."
    return text


def format_script_response(text: str, panel_count: int) -> str:
    """One sentence per panel, labelled and separated by blank lines."""
    sentences = [s.strip() for s in SENTENCE_END.split(text)]
    sentences = [s for s in sentences if s][:panel_count]
    return "\n\n".join(
        f"Panel {number}: {sentence}"
        for number, sentence in enumerate(sentences, start=1)
    )


class ScriptGenerator:
    """Generates panel-by-panel comic scripts from a story idea."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = http_client
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def generate_script(
        self,
        prompt: str,
        panel_count: int = 4,
        characters: Sequence[str] = (),
        tone: str = "adventure",
        context: Optional[GenerationContext] = None,
    ) -> GenerationResult:
        """
        Generate a comic script.

        Returns:
            GenerationResult with the formatted script text as data
        """
        context = context or get_default_context()
        if not context.has_credential:
            return GenerationResult.failure(missing_credential())

        full_prompt = build_script_prompt(prompt, panel_count, characters, tone)
        payload = {
            "inputs": full_prompt,
            "parameters": {
                "max_length": panel_count * TOKENS_PER_PANEL,
                "num_return_sequences": 1,
                "temperature": 0.8,
                "top_p": 0.9,
                "repetition_penalty": 1.2,
            },
        }

        logger.info(f"Generating {panel_count}-panel script for: {prompt[:80]}")
        client = await self._get_client()
        try:
            response = await client.post(
                f"{context.base_url}/{SCRIPT_MODEL}",
                headers=auth_headers(context),
                json=payload,
                timeout=context.script_timeout,
            )
        except httpx.HTTPError as e:
            error = error_for_transport(e)
            logger.error(f"Script request failed: {error}")
            return GenerationResult.failure(error)

        if not response.is_success:
            kind = classify_failure(response.status_code, response.content)
            error = error_for_response(kind, response.status_code, response.content)
            logger.error(f"Script generation failed: {error}")
            return GenerationResult.failure(error)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, list):
            return GenerationResult.failure(
                generation_failed(
                    "Invalid response format from the script generation API",
                    response.status_code,
                )
            )

        first = data[0] if data and isinstance(data[0], dict) else {}
        generated = first.get("generated_text")
        if not isinstance(generated, str):
            generated = ""
        script = format_script_response(generated, panel_count)
        panel_lines = [line for line in script.splitlines() if line.strip()]
        logger.info(f"Script ready: {len(panel_lines)} panels")
        return GenerationResult.success(script)
