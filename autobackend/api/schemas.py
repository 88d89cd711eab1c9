from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from autobackend.services.spec_validator import FieldError


class _CamelModel(BaseModel):
    """Base for response bodies that serialize with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)


# PUBLIC_INTERFACE
class MessageResponse(BaseModel):
    """Plain welcome message."""
    message: str = Field(..., description="Human-readable message.")


# PUBLIC_INTERFACE
class HealthResponse(BaseModel):
    """Liveness information for monitoring."""
    status: Literal["healthy"] = Field(..., description="Always 'healthy' while the process is serving.")
    timestamp: str = Field(..., description="ISO 8601 UTC time of the check.")
    environment: str = Field(..., description="Operating-mode label from configuration.")


# PUBLIC_INTERFACE
class GenerationMetadata(_CamelModel):
    """Summary of a generated project."""
    api_title: str = Field(..., alias="apiTitle", description="info.title of the submitted spec.")
    api_version: str = Field(..., alias="apiVersion", description="info.version of the submitted spec.")
    generated_at: str = Field(..., alias="generatedAt", description="ISO 8601 UTC generation time.")
    file_count: int = Field(..., alias="fileCount", description="Number of generated files.")
    files: List[str] = Field(..., description="Generated file paths, in the order produced.")


# PUBLIC_INTERFACE
class GenerationResponse(_CamelModel):
    """Successful /generate response."""
    success: Literal[True] = True
    metadata: GenerationMetadata
    files: Dict[str, str] = Field(..., description="Relative file path -> complete file content.")


# PUBLIC_INTERFACE
class ValidationErrorResponse(BaseModel):
    """400 response for a structurally invalid OpenAPI document."""
    error: str = Field(..., description="Error category.")
    details: List[FieldError] = Field(..., description="One entry per failing field.")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """500 response for generation or unexpected failures."""
    error: str = Field(..., description="Error category.")
    message: str = Field(..., description="What went wrong.")
    timestamp: str = Field(..., description="ISO 8601 UTC time of the failure.")


# PUBLIC_INTERFACE
class CredentialCheckResponse(BaseModel):
    """Result of GET /test-api."""
    success: bool
    message: str
    model: str = Field(..., description="Resource name of the configured Gemini model.")
