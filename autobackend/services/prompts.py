"""
Prompts handed to the generation model.

The system prompt is a fixed, versioned constant so the shape of the generated
project stays predictable; only the embedded OpenAPI document varies between
requests.
"""
from __future__ import annotations

import json
from typing import Any, Dict, NamedTuple

SYSTEM_PROMPT_VERSION = "2"

ALLOWED_DEPENDENCIES = (
    "hono (latest)",
    "@hono/node-server",
    "zod (for validation)",
    "@types/node",
    "typescript",
    "tsx (for development)",
)

SYSTEM_PROMPT = (
    "You are an expert full-stack developer specializing in creating robust, production-ready "
    "backend services with Hono.js and TypeScript.\n"
    "\n"
    "**TASK:** Generate a complete Hono.js project from the provided OpenAPI 3.0 specification.\n"
    "\n"
    "**OUTPUT FORMAT:** Return a JSON object where:\n"
    '- Keys are file paths (e.g., "src/routes/users.ts", "src/models/User.ts")\n'
    "- Values are the complete file contents as strings\n"
    "- The object is flat: no nesting, no arrays, no other top-level keys\n"
    "\n"
    "**PROJECT STRUCTURE:**\n"
    "1. **src/index.ts**: Main entry point with Hono app initialization\n"
    "2. **src/routes/*.ts**: Route handlers organized by resource\n"
    "3. **src/models/*.ts**: TypeScript interfaces/types from OpenAPI schemas\n"
    "4. **src/middleware/*.ts**: Custom middleware if needed\n"
    "5. **src/utils/*.ts**: Utility functions\n"
    "6. **package.json**: Complete dependencies\n"
    "7. **tsconfig.json**: TypeScript configuration\n"
    "8. **README.md**: Setup and usage instructions\n"
    "\n"
    "**CODE REQUIREMENTS:**\n"
    "- Use TypeScript with proper typing\n"
    "- Implement proper error handling\n"
    "- Add input validation using Zod\n"
    "- Include proper HTTP status codes\n"
    "- Add JSDoc comments for functions\n"
    "- Use consistent code formatting\n"
    "- Include example request/response data in comments\n"
    "\n"
    "**DEPENDENCIES TO INCLUDE:**\n"
    + "".join(f"- {dep}\n" for dep in ALLOWED_DEPENDENCIES)
    + "Do not depend on any other package.\n"
    "\n"
    "Generate production-ready, well-documented code that follows best practices."
)

USER_PROMPT_PREFIX = "Generate a complete Hono.js project for this OpenAPI specification:"


# PUBLIC_INTERFACE
class PromptPair(NamedTuple):
    """System and user instructions for a single generation call."""
    system: str
    user: str


def serialize_spec(spec: Dict[str, Any]) -> str:
    """Pretty-print a spec the way it is embedded in the user prompt (2-space indent)."""
    return json.dumps(spec, indent=2, ensure_ascii=False)


# PUBLIC_INTERFACE
def build_prompt(spec: Dict[str, Any]) -> PromptPair:
    """
    Build the prompt pair for a validated OpenAPI document.

    Pure and deterministic: the system part is always SYSTEM_PROMPT and the
    user part is the fixed directive followed by the pretty-printed document.
    """
    user = f"{USER_PROMPT_PREFIX}\n\n{serialize_spec(spec)}"
    return PromptPair(system=SYSTEM_PROMPT, user=user)
