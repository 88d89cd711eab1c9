"""
Structural validation for incoming OpenAPI 3.x documents.

Only the minimal shape needed to drive generation is checked: the version
string, the info block and the presence of paths. Contents of `paths` and
`components.schemas` pass through untouched; semantic checks are left to the
model that consumes the document.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, StringConstraints, ValidationError

OPENAPI_VERSION_REGEX = r"^3\.[0-9]+\.[0-9]+$"
ROOT_FIELD = "$"

StrictString = Annotated[str, StringConstraints(strict=True)]
OpenAPIVersion = Annotated[str, StringConstraints(strict=True, pattern=OPENAPI_VERSION_REGEX)]


# PUBLIC_INTERFACE
class FieldError(BaseModel):
    """A single failed check, tagged with the dotted path of the offending field."""
    field: str = Field(..., description="Dotted path of the field, or '$' for the document root.")
    message: str = Field(..., description="What was wrong with the value.")
    expected: str = Field(..., description="The shape the field must have.")


# PUBLIC_INTERFACE
class SpecValidationResult(BaseModel):
    """Outcome of validate_spec: either a valid spec or a non-empty list of errors."""
    spec: Optional[Dict[str, Any]] = Field(
        default=None, description="The submitted document, unchanged, when valid."
    )
    errors: List[FieldError] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error_for(self, field: str) -> Optional[FieldError]:
        for err in self.errors:
            if err.field == field:
                return err
        return None


class Info(BaseModel):
    title: StrictString
    version: StrictString


class Components(BaseModel):
    # Absent is fine; an explicit null is not, so no Optional here.
    schemas: Dict[str, Any] = None


class OpenAPIDocument(BaseModel):
    """The parts of an OpenAPI 3.x document that generation relies on."""
    openapi: OpenAPIVersion
    info: Info
    paths: Dict[str, Any]
    components: Components = None


# Shape reported for each checked field, keyed by dotted path.
EXPECTED_SHAPES: Dict[str, str] = {
    "openapi": "string",
    "info": "object",
    "info.title": "string",
    "info.version": "string",
    "paths": "object",
    "components": "object",
    "components.schemas": "object",
}


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _to_field_error(err: Dict[str, Any]) -> FieldError:
    """Translate one pydantic error entry into the FieldError clients see."""
    path = ".".join(str(part) for part in err["loc"])
    expected = EXPECTED_SHAPES.get(path, "object")
    kind = err["type"]
    if kind == "missing":
        return FieldError(field=path, message="Required", expected=expected)
    if kind == "string_pattern_mismatch":
        return FieldError(
            field=path,
            message=f"Must be OpenAPI 3.x.x, received '{err['input']}'",
            expected="string matching ^3\\.\\d+\\.\\d+$",
        )
    if kind in ("string_type", "dict_type", "model_type", "model_attributes_type"):
        return FieldError(
            field=path, message=f"Expected {expected}, received {_type_name(err['input'])}", expected=expected
        )
    return FieldError(field=path, message=err["msg"], expected=expected)


# PUBLIC_INTERFACE
def validate_spec(raw: Any) -> SpecValidationResult:
    """
    Validate the structural shape of an OpenAPI 3.x document.

    All checks run even after a failure so the caller gets every problem in
    one response. The function is pure: the input is never modified and no
    defaults are filled in, so the same input always yields the same result.

    Parameters
    ----------
    raw : Any
        A parsed JSON value.

    Returns
    -------
    SpecValidationResult
        `spec` holds the input when valid; otherwise `errors` lists each
        failing field with its expected shape.
    """
    if not isinstance(raw, dict):
        return SpecValidationResult(
            errors=[
                FieldError(
                    field=ROOT_FIELD,
                    message=f"Expected object, received {_type_name(raw)}",
                    expected="OpenAPI 3.x document object",
                )
            ]
        )

    try:
        OpenAPIDocument.model_validate(raw)
    except ValidationError as e:
        return SpecValidationResult(errors=[_to_field_error(err) for err in e.errors()])
    return SpecValidationResult(spec=raw)
