import json

import httpx
import pytest

from autobackend.config import Settings
from autobackend.services.generation import (
    PROJECT_FILES_SCHEMA,
    GeminiProjectGenerator,
    GenerationError,
    GenerationErrorKind,
    coerce_project,
    invoke_generation,
)
from autobackend.services.prompts import PromptPair

from tests.conftest import StubGenerator

PROMPT = PromptPair(system="system text", user="user text")


def _settings(api_key="test-key") -> Settings:
    config = Settings()
    config.GOOGLE_API_KEY = api_key
    config.GEMINI_MODEL = "gemini-test"
    config.GEMINI_API_BASE = "https://gemini.example/v1beta"
    config.GENERATION_TEMPERATURE = 0.1
    return config


def _candidate(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


def _generator(handler, api_key="test-key") -> GeminiProjectGenerator:
    return GeminiProjectGenerator(_settings(api_key), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_invoke_returns_project_in_producer_order():
    stub = StubGenerator(result={"package.json": "{}", "src/index.ts": "// entry"})
    project = await invoke_generation(stub, PROMPT)
    assert list(project) == ["package.json", "src/index.ts"]
    assert stub.calls == [{"system": "system text", "user": "user text", "output_schema": PROJECT_FILES_SCHEMA}]


@pytest.mark.asyncio
async def test_invoke_wraps_unexpected_exceptions_as_upstream():
    stub = StubGenerator(error=ConnectionResetError("boom"))
    with pytest.raises(GenerationError) as excinfo:
        await invoke_generation(stub, PROMPT)
    assert excinfo.value.kind is GenerationErrorKind.upstream


@pytest.mark.asyncio
async def test_invoke_passes_typed_errors_through():
    err = GenerationError(GenerationErrorKind.configuration, "bad key")
    with pytest.raises(GenerationError) as excinfo:
        await invoke_generation(StubGenerator(error=err), PROMPT)
    assert excinfo.value is err


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [None, "text", ["a"], {"a": 1}, {"a": {"nested": "x"}}, {}])
async def test_invoke_rejects_non_conforming_output(result):
    with pytest.raises(GenerationError) as excinfo:
        await invoke_generation(StubGenerator(result=result), PROMPT)
    assert excinfo.value.kind is GenerationErrorKind.invalid_output


def test_coerce_project_accepts_string_map():
    assert coerce_project({"README.md": "# hi"}) == {"README.md": "# hi"}


@pytest.mark.asyncio
async def test_gemini_request_shape():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_candidate(json.dumps({"src/index.ts": "// entry"})))

    result = await _generator(handler).generate("sys", "usr", PROJECT_FILES_SCHEMA)

    assert result == {"src/index.ts": "// entry"}
    assert seen["url"] == "https://gemini.example/v1beta/models/gemini-test:generateContent"
    assert seen["key"] == "test-key"
    body = seen["body"]
    assert body["systemInstruction"] == {"parts": [{"text": "sys"}]}
    assert body["contents"] == [{"role": "user", "parts": [{"text": "usr"}]}]
    assert body["generationConfig"] == {
        "temperature": 0.1,
        "responseMimeType": "application/json",
        "responseJsonSchema": PROJECT_FILES_SCHEMA,
    }


@pytest.mark.asyncio
async def test_gemini_joins_multiple_text_parts():
    def handler(request):
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": '{"a.ts": '}, {"text": '"x"}'}]}}]},
        )

    assert await _generator(handler).generate("s", "u", PROJECT_FILES_SCHEMA) == {"a.ts": "x"}


@pytest.mark.asyncio
async def test_gemini_missing_key_is_configuration_error():
    def handler(request):
        raise AssertionError("no request expected without a key")

    with pytest.raises(GenerationError) as excinfo:
        await _generator(handler, api_key=None).generate("s", "u", PROJECT_FILES_SCHEMA)
    assert excinfo.value.kind is GenerationErrorKind.configuration


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,body,kind",
    [
        (401, {"error": {"status": "UNAUTHENTICATED"}}, GenerationErrorKind.configuration),
        (403, {"error": {"status": "PERMISSION_DENIED"}}, GenerationErrorKind.configuration),
        (400, {"error": {"details": [{"reason": "API_KEY_INVALID"}]}}, GenerationErrorKind.configuration),
        (400, {"error": {"status": "INVALID_ARGUMENT"}}, GenerationErrorKind.upstream),
        (429, {"error": {"status": "RESOURCE_EXHAUSTED"}}, GenerationErrorKind.upstream),
        (503, {"error": {"status": "UNAVAILABLE"}}, GenerationErrorKind.upstream),
    ],
)
async def test_gemini_status_mapping(status, body, kind):
    def handler(request):
        return httpx.Response(status, json=body)

    with pytest.raises(GenerationError) as excinfo:
        await _generator(handler).generate("s", "u", PROJECT_FILES_SCHEMA)
    assert excinfo.value.kind is kind
    assert "test-key" not in excinfo.value.message


@pytest.mark.asyncio
async def test_gemini_transport_error_is_upstream():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GenerationError) as excinfo:
        await _generator(handler).generate("s", "u", PROJECT_FILES_SCHEMA)
    assert excinfo.value.kind is GenerationErrorKind.upstream


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": []}, "finishReason": "MAX_TOKENS"}]}),
        httpx.Response(200, json=_candidate('{"src/index.ts": "// trunc')),
        httpx.Response(200, json={"candidates": [{"content": "oops"}]}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": "oops"}}]}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": 5}]}}]}),
        httpx.Response(200, json={"candidates": ["oops"]}),
        httpx.Response(200, json={"candidates": {"0": {}}}),
    ],
)
async def test_gemini_unusable_output_is_invalid_output(response):
    with pytest.raises(GenerationError) as excinfo:
        await _generator(lambda request: response).generate("s", "u", PROJECT_FILES_SCHEMA)
    assert excinfo.value.kind is GenerationErrorKind.invalid_output


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"candidates": [{"content": "oops"}]},
        {"candidates": [{"content": {"parts": [{"text": 5}]}}]},
    ],
)
async def test_invoke_reports_malformed_gemini_content_as_invalid_output(body):
    generator = _generator(lambda request: httpx.Response(200, json=body))
    with pytest.raises(GenerationError) as excinfo:
        await invoke_generation(generator, PROMPT)
    assert excinfo.value.kind is GenerationErrorKind.invalid_output


@pytest.mark.asyncio
async def test_check_credentials_returns_model_info():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/v1beta/models/gemini-test"
        return httpx.Response(200, json={"name": "models/gemini-test", "displayName": "Gemini Test"})

    info = await _generator(handler).check_credentials()
    assert info == {"name": "models/gemini-test", "displayName": "Gemini Test"}


@pytest.mark.asyncio
async def test_check_credentials_rejected_key():
    def handler(request):
        return httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED"}})

    with pytest.raises(GenerationError) as excinfo:
        await _generator(handler).check_credentials()
    assert excinfo.value.kind is GenerationErrorKind.configuration
