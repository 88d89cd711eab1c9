"""
Turns pipeline outcomes into HTTP responses.

Success payloads carry metadata derived from the spec and the generated file
map; failures are mapped to 400 (bad spec) or 500 (generation or unexpected
error). Nothing raised while assembling escapes to the transport layer.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi.responses import JSONResponse

from autobackend.api.schemas import GenerationMetadata, GenerationResponse
from autobackend.services.generation import GeneratedProject, GenerationError
from autobackend.services.spec_validator import SpecValidationResult

logger = logging.getLogger(__name__)

INVALID_SPEC_ERROR = "Invalid OpenAPI specification"
GENERATION_FAILED_ERROR = "Code generation failed"
INTERNAL_ERROR = "Internal server error"


# PUBLIC_INTERFACE
def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO 8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# PUBLIC_INTERFACE
def build_success(
    spec: Dict[str, Any], files: GeneratedProject, generated_at: Optional[datetime] = None
) -> GenerationResponse:
    """
    Wrap a generated project with its metadata.

    `metadata.files` lists the keys of `files` in the mapping's own order, so
    it always matches the returned file set exactly.
    """
    info = spec["info"]
    file_names = list(files)
    metadata = GenerationMetadata(
        api_title=info["title"],
        api_version=info["version"],
        generated_at=utc_timestamp(generated_at),
        file_count=len(file_names),
        files=file_names,
    )
    return GenerationResponse(success=True, metadata=metadata, files=files)


# PUBLIC_INTERFACE
def validation_failure(result: SpecValidationResult) -> JSONResponse:
    """400 response listing every field that failed validation."""
    return JSONResponse(
        status_code=400,
        content={
            "error": INVALID_SPEC_ERROR,
            "details": [err.model_dump() for err in result.errors],
        },
    )


# PUBLIC_INTERFACE
def generation_failure(error: GenerationError) -> JSONResponse:
    """500 response for a failed generation; never includes a files key."""
    return JSONResponse(
        status_code=500,
        content={
            "error": GENERATION_FAILED_ERROR,
            "message": error.message,
            "timestamp": utc_timestamp(),
        },
    )


# PUBLIC_INTERFACE
def unexpected_failure(exc: BaseException) -> JSONResponse:
    """Generic 500 envelope for faults outside the known taxonomy."""
    return JSONResponse(
        status_code=500,
        content={
            "error": INTERNAL_ERROR,
            "message": str(exc) or type(exc).__name__,
            "timestamp": utc_timestamp(),
        },
    )


# PUBLIC_INTERFACE
def assemble(spec: Dict[str, Any], outcome: Union[GeneratedProject, GenerationError]) -> JSONResponse:
    """
    Build the /generate response for a validated spec and a generation outcome.

    Parameters
    ----------
    spec : dict
        The validated OpenAPI document.
    outcome : dict | GenerationError
        The generated project, or the error that prevented it.

    Returns
    -------
    JSONResponse
        200 with metadata and files, or a 500 error envelope.
    """
    if isinstance(outcome, GenerationError):
        return generation_failure(outcome)
    try:
        payload = build_success(spec, outcome)
        return JSONResponse(status_code=200, content=payload.model_dump(by_alias=True))
    except Exception as e:
        logger.exception("Failed to assemble generation response")
        return unexpected_failure(e)
