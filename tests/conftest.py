from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from autobackend.api.main import app
from autobackend.services.generation import get_generator


class StubGenerator:
    """Deterministic stand-in for the Gemini backend."""

    def __init__(self, result: Any = None, error: Optional[BaseException] = None):
        self.result = result
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, system: str, user: str, output_schema: Dict[str, Any]) -> Any:
        self.calls.append({"system": system, "user": user, "output_schema": output_schema})
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def minimal_spec() -> Dict[str, Any]:
    return {"openapi": "3.0.0", "info": {"title": "Blog", "version": "1.0.0"}, "paths": {}}


@pytest.fixture
def use_generator():
    """Install a generator for /generate for the duration of one test."""

    def _install(generator) -> None:
        app.dependency_overrides[get_generator] = lambda: generator

    yield _install
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)
