"""
Thin wrapper around the Gemini generative API.

send_prompt() makes exactly one generate_content call. Failures surface as
GenerationException; nothing is retried.
"""
import json
import logging
import re
from typing import Any, Optional

from google import genai
from google.genai import types

from config import settings
from exceptions import GenerationException

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "\n\nPlease respond with valid JSON only, no additional text."

_FENCE_RE = re.compile(r"```(?:json)?\n?")

_client: Optional[genai.Client] = None


def is_configured() -> bool:
    return bool(settings.GEMINI_API_KEY)


def get_client() -> genai.Client:
    global _client
    if not is_configured():
        raise GenerationException(
            "Gemini API not configured",
            error="Please set GEMINI_API_KEY in .env",
        )
    if _client is None:
        _client = genai.Client(api_key=settings.GEMINI_API_KEY)
        logger.info("Gemini client initialized (model=%s)", settings.GEMINI_MODEL)
    return _client


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_json_text(text: str) -> Any:
    """Parse model output as JSON, falling back to {"text": ...} when it is not."""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except ValueError as e:
        logger.warning("Failed to parse JSON response: %s", e)
        return {"text": cleaned}


def send_prompt(prompt: str, temperature: float = 0.7, max_tokens: int = 1000,
                response_format: str = "text") -> Any:
    """
    Send a prompt to Gemini.

    Returns the parsed JSON value when response_format is "json" (or
    {"text": raw} if the model did not answer with JSON), otherwise
    {"text": raw}.
    """
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValueError("Prompt is required and must be a non-empty string")

    ai_client = get_client()

    final_prompt = prompt
    if response_format == "json":
        final_prompt = f"{prompt}{JSON_INSTRUCTION}"

    config = types.GenerateContentConfig(
        temperature=max(0.0, min(1.0, temperature)),
        max_output_tokens=max_tokens,
    )

    try:
        response = ai_client.models.generate_content(
            model=settings.GEMINI_MODEL,
            contents=final_prompt,
            config=config,
        )
    except Exception as e:
        logger.error("Gemini API error: %s", e)
        raise GenerationException(error=str(e) or "Failed to generate response from Gemini")

    text = response.text or ""
    if not text.strip():
        raise GenerationException(error="Gemini returned an empty response")

    if response_format == "json":
        return parse_json_text(text)
    return {"text": text}
