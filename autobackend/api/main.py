import json
import logging
from contextlib import asynccontextmanager
from time import perf_counter

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from autobackend.api.schemas import (
    CredentialCheckResponse,
    ErrorResponse,
    GenerationResponse,
    HealthResponse,
    MessageResponse,
    ValidationErrorResponse,
)
from autobackend.config import check_startup, settings
from autobackend.logging_config import configure_logging
from autobackend.services.assembler import assemble, unexpected_failure, utc_timestamp, validation_failure
from autobackend.services.generation import (
    GeminiProjectGenerator,
    GenerationError,
    ProjectGenerator,
    get_gemini_generator,
    get_generator,
    invoke_generation,
)
from autobackend.services.prompts import SYSTEM_PROMPT_VERSION, build_prompt
from autobackend.services.sample_spec import get_sample_spec
from autobackend.services.spec_validator import ROOT_FIELD, validate_spec

# Initialize logging first so any early logs are captured
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to serve when the configuration is unusable, however the app is launched."""
    problems = check_startup(settings)
    if problems:
        for problem in problems:
            logger.error("Startup check failed: %s", problem)
        raise RuntimeError("; ".join(problems))
    logger.info("Auto Backend API starting (%s, model %s)", settings.ENVIRONMENT, settings.GEMINI_MODEL)
    yield
    logger.info("Auto Backend API shutting down")


app = FastAPI(
    title="Auto Backend API",
    description="Generates a Hono.js/TypeScript backend project from an OpenAPI 3.x specification.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration for every request."""
    start = perf_counter()
    response = await call_next(request)
    elapsed_ms = int((perf_counter() - start) * 1000)
    logger.info("%s %s -> %d in %d ms", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.middleware("http")
async def pretty_json(request: Request, call_next):
    """Re-indent JSON bodies (2 spaces) when the request carries a `pretty` query parameter."""
    response = await call_next(request)
    if "pretty" not in request.query_params:
        return response
    if not response.headers.get("content-type", "").startswith("application/json"):
        return response

    body = b"".join([chunk async for chunk in response.body_iterator])
    try:
        body = json.dumps(json.loads(body), indent=2, ensure_ascii=False).encode("utf-8")
    except ValueError:
        logger.warning("pretty: %s %s returned a body that is not JSON", request.method, request.url.path)
    headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
    return Response(content=body, status_code=response.status_code, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc), "timestamp": utc_timestamp()},
    )


@app.get("/", response_model=MessageResponse, summary="Welcome", tags=["Health"])
def root():
    return {"message": "Welcome to the Auto Backend API"}


@app.get("/health", response_model=HealthResponse, summary="Health Check", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns
    -------
    dict
        Status, current UTC timestamp and the configured environment label.
    """
    return {"status": "healthy", "timestamp": utc_timestamp(), "environment": settings.ENVIRONMENT}


# PUBLIC_INTERFACE
@app.post(
    "/generate",
    response_model=GenerationResponse,
    summary="Generate a backend project",
    description="Validates an OpenAPI 3.x document and returns a map of file path -> file content for a generated Hono.js project.",
    tags=["Generation"],
    responses={400: {"model": ValidationErrorResponse}, 500: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": {"type": "object", "description": "OpenAPI 3.x document"}}},
        }
    },
)
async def generate(request: Request, generator: ProjectGenerator = Depends(get_generator)):
    """
    Generate a project from the OpenAPI document in the request body.

    Steps: validate the document, build the prompt pair, make one generation
    call, then assemble the response. Validation problems return 400 with
    per-field details; generation failures return 500 without a files key.
    """
    total_start = perf_counter()
    try:
        try:
            body = await request.json()
        except ValueError:
            logger.info("POST /generate received a body that is not JSON")
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Invalid JSON body",
                    "details": [
                        {
                            "field": ROOT_FIELD,
                            "message": "Request body must be valid JSON",
                            "expected": "OpenAPI 3.x document object",
                        }
                    ],
                },
            )

        result = validate_spec(body)
        if not result.valid:
            logger.info(
                "Rejected OpenAPI spec: %s",
                ", ".join(f"{err.field} ({err.message})" for err in result.errors),
            )
            return validation_failure(result)

        spec = result.spec
        prompt = build_prompt(spec)
        logger.debug("Built prompt v%s, user prompt %d chars", SYSTEM_PROMPT_VERSION, len(prompt.user))

        try:
            outcome = await invoke_generation(generator, prompt)
        except GenerationError as e:
            outcome = e

        response = assemble(spec, outcome)
        total_ms = int((perf_counter() - total_start) * 1000)
        logger.info("Route /generate returned %d after %d ms", response.status_code, total_ms)
        return response
    except Exception as e:
        total_ms = int((perf_counter() - total_start) * 1000)
        logger.exception("Route /generate failed after %d ms: %s", total_ms, str(e))
        return unexpected_failure(e)


@app.get("/sample-spec", summary="Sample OpenAPI document", tags=["Generation"])
def sample_spec():
    """Return a fixed OpenAPI 3.0 document that is always valid input for /generate."""
    return get_sample_spec()


@app.get(
    "/test-api",
    response_model=CredentialCheckResponse,
    summary="Check generation credentials",
    tags=["Health"],
    responses={500: {"model": ErrorResponse}},
)
async def check_generation_api(gemini: GeminiProjectGenerator = Depends(get_gemini_generator)):
    """Confirm the configured Gemini API key can reach the configured model."""
    try:
        model = await gemini.check_credentials()
    except GenerationError as e:
        logger.warning("Generation API check failed: kind=%s %s", e.kind.value, e.message)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "API test failed",
                "message": e.message,
                "timestamp": utc_timestamp(),
            },
        )
    except Exception as e:
        logger.exception("Generation API check raised unexpectedly: %s", str(e))
        return unexpected_failure(e)
    return {
        "success": True,
        "message": f"Generation API reachable ({model['displayName']})",
        "model": model["name"],
    }
