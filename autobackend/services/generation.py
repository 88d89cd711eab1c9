from __future__ import annotations

import json
import logging
from enum import Enum
from time import perf_counter
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from autobackend.config import Settings, settings
from autobackend.services.prompts import PromptPair

# Module-level logger
logger = logging.getLogger(__name__)

GeneratedProject = Dict[str, str]

# JSON Schema the model output must conform to: a flat map of path -> content.
PROJECT_FILES_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": {"type": "string"},
}

_PROJECT_ADAPTER = TypeAdapter(Dict[str, str])

# Truncation limit for upstream error bodies in logs
MAX_LOGGED_BODY_CHARS = 500


# PUBLIC_INTERFACE
class GenerationErrorKind(str, Enum):
    """Why a generation attempt failed."""
    configuration = "configuration"
    upstream = "upstream"
    invalid_output = "invalid_output"


# PUBLIC_INTERFACE
class GenerationError(Exception):
    """
    The generation backend did not produce a usable project.

    `message` is safe to return to clients; it never contains credentials or
    raw upstream payloads.
    """

    def __init__(self, kind: GenerationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, message={self.message!r})"


# PUBLIC_INTERFACE
class ProjectGenerator(Protocol):
    """Anything that can turn a prompt pair into a value matching output_schema."""

    async def generate(self, system: str, user: str, output_schema: Dict[str, Any]) -> Any:
        ...


def _extract_candidate_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate of a generateContent reply."""
    if not isinstance(data, dict):
        raise GenerationError(GenerationErrorKind.invalid_output, "Generation service returned a malformed response.")
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        detail = f" (blocked: {reason})" if reason else ""
        raise GenerationError(
            GenerationErrorKind.invalid_output, f"Generation service returned no candidates{detail}."
        )
    if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
        raise GenerationError(GenerationErrorKind.invalid_output, "Generation service returned a malformed candidate.")
    first = candidates[0]
    content = first.get("content") or {}
    parts = (content.get("parts") or []) if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise GenerationError(
            GenerationErrorKind.invalid_output, "Generation service returned malformed candidate content."
        )
    texts = []
    for part in parts:
        text = part.get("text", "") if isinstance(part, dict) else None
        if not isinstance(text, str):
            raise GenerationError(
                GenerationErrorKind.invalid_output, "Generation service returned a non-text content part."
            )
        texts.append(text)
    text = "".join(texts)
    if not text.strip():
        finish = first.get("finishReason", "unknown")
        raise GenerationError(
            GenerationErrorKind.invalid_output,
            f"Generation service returned an empty candidate (finishReason={finish}).",
        )
    return text


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.status_code == 200:
        return
    body = resp.text[:MAX_LOGGED_BODY_CHARS]
    logger.warning("Gemini non-200: %s body=%s", resp.status_code, body)
    if resp.status_code in (401, 403) or (resp.status_code == 400 and "API_KEY_INVALID" in resp.text):
        raise GenerationError(
            GenerationErrorKind.configuration,
            "Generation service rejected the configured API key.",
        )
    raise GenerationError(
        GenerationErrorKind.upstream,
        f"Generation service responded with HTTP {resp.status_code}.",
    )


# PUBLIC_INTERFACE
class GeminiProjectGenerator:
    """
    ProjectGenerator backed by the Gemini REST API (generateContent).

    The output schema is passed as `responseJsonSchema` with a JSON response
    MIME type so the model is constrained to the requested shape.
    """

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._config = config or settings
        # Optional transport override, e.g. httpx.MockTransport.
        self._transport = transport

    @property
    def model(self) -> str:
        return self._config.GEMINI_MODEL

    def _headers(self) -> Dict[str, str]:
        api_key = (self._config.GOOGLE_API_KEY or "").strip()
        if not api_key:
            raise GenerationError(
                GenerationErrorKind.configuration,
                "Generation service is not configured: GOOGLE_API_KEY is missing.",
            )
        return {"x-goog-api-key": api_key, "Content-Type": "application/json"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.GEMINI_API_BASE,
            timeout=self._config.GENERATION_TIMEOUT_S,
            transport=self._transport,
        )

    def build_payload(self, system: str, user: str, output_schema: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": user}]}],
            "generationConfig": {
                "temperature": self._config.GENERATION_TEMPERATURE,
                "responseMimeType": "application/json",
                "responseJsonSchema": output_schema,
            },
        }

    async def generate(self, system: str, user: str, output_schema: Dict[str, Any]) -> Any:
        headers = self._headers()
        payload = self.build_payload(system, user, output_schema)
        try:
            async with self._client() as client:
                resp = await client.post(f"/models/{self.model}:generateContent", headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Gemini transport error: %s", type(e).__name__)
            raise GenerationError(
                GenerationErrorKind.upstream, "Could not reach the generation service."
            ) from e

        _raise_for_status(resp)
        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError(
                GenerationErrorKind.invalid_output, "Generation service returned a non-JSON response."
            ) from e

        text = _extract_candidate_text(data)
        try:
            return json.loads(text)
        except ValueError as e:
            raise GenerationError(
                GenerationErrorKind.invalid_output, "Generated output is not valid JSON."
            ) from e

    async def check_credentials(self) -> Dict[str, str]:
        """
        Confirm the API key can reach the configured model.

        Returns the model's resource name and display name.
        """
        headers = self._headers()
        try:
            async with self._client() as client:
                resp = await client.get(f"/models/{self.model}", headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Gemini transport error during credential check: %s", type(e).__name__)
            raise GenerationError(
                GenerationErrorKind.upstream, "Could not reach the generation service."
            ) from e
        _raise_for_status(resp)
        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError(
                GenerationErrorKind.invalid_output, "Generation service returned a non-JSON response."
            ) from e
        if not isinstance(data, dict):
            data = {}
        return {
            "name": str(data.get("name", f"models/{self.model}")),
            "displayName": str(data.get("displayName", self.model)),
        }


# PUBLIC_INTERFACE
def coerce_project(value: Any) -> GeneratedProject:
    """
    Check that a generator's result is a non-empty mapping of str -> str.

    Raises GenerationError(invalid_output) otherwise, so callers never see a
    partially typed or empty project.
    """
    try:
        project = _PROJECT_ADAPTER.validate_python(value, strict=True)
    except ValidationError as e:
        logger.warning("Generated output failed shape check: %d error(s)", e.error_count())
        raise GenerationError(
            GenerationErrorKind.invalid_output,
            "Generated output is not a mapping of file paths to file contents.",
        ) from e
    if not project:
        raise GenerationError(GenerationErrorKind.invalid_output, "Generated project contains no files.")
    return project


# PUBLIC_INTERFACE
async def invoke_generation(generator: ProjectGenerator, prompt: PromptPair) -> GeneratedProject:
    """
    Run a single generation attempt and return the generated project.

    There is no retry and no timeout beyond whatever the generator enforces.
    Every failure, including unexpected exceptions from the generator, is
    reported as a GenerationError.
    """
    start = perf_counter()
    try:
        raw = await generator.generate(prompt.system, prompt.user, PROJECT_FILES_SCHEMA)
    except GenerationError as e:
        elapsed_ms = int((perf_counter() - start) * 1000)
        logger.warning("Generation failed after %d ms: kind=%s %s", elapsed_ms, e.kind.value, e.message)
        raise
    except Exception as e:
        elapsed_ms = int((perf_counter() - start) * 1000)
        logger.exception("Generation raised unexpectedly after %d ms", elapsed_ms)
        raise GenerationError(GenerationErrorKind.upstream, "Generation service call failed.") from e

    project = coerce_project(raw)
    elapsed_ms = int((perf_counter() - start) * 1000)
    logger.info("Generation completed in %d ms with %d file(s)", elapsed_ms, len(project))
    return project


# PUBLIC_INTERFACE
def get_gemini_generator() -> GeminiProjectGenerator:
    """FastAPI dependency returning the Gemini-backed generator built from settings."""
    return GeminiProjectGenerator(settings)


# PUBLIC_INTERFACE
def get_generator() -> ProjectGenerator:
    """FastAPI dependency returning the generator used by /generate."""
    return get_gemini_generator()
