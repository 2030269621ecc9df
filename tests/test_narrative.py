import asyncio
import json

import httpx
import pytest

from core.engine import run_analysis
from core.errors import AnalysisError
from fetch.narrative_client import ChatCompletionsNarrativeGenerator, generate_narrative, split_sections

COMPLETION = """Overall a small but tidy Next.js project.

## Strengths
Clear README with installation steps.

## Risks
- One possible SQL injection.

## Recommendations
Add a lint script.
"""


def test_split_sections():
    sections = split_sections(COMPLETION)
    assert list(sections) == ["Summary", "Strengths", "Risks", "Recommendations"]
    assert sections["Summary"] == "Overall a small but tidy Next.js project."
    assert sections["Risks"] == "- One possible SQL injection."


def test_split_sections_merges_repeated_headings():
    sections = split_sections("## Risks\nfirst\n## Risks\nsecond\n")
    assert sections == {"Risks": "first\n\nsecond"}
    assert split_sections("") == {}


@pytest.fixture
def result(rule_book):
    return run_analysis({"README.md": "# Demo\n\n" + "word " * 300}, rules=rule_book)


@pytest.mark.asyncio
async def test_chat_completions_generator(result):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": COMPLETION}}]})

    generator = ChatCompletionsNarrativeGenerator(
        api_key="sk-test", base_url="https://llm.example.com/v1/", model="tiny", transport=httpx.MockTransport(handler)
    )
    try:
        sections = await generate_narrative(generator, result)
    finally:
        await generator.aclose()

    assert sections["Recommendations"] == "Add a lint script."
    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "tiny"
    payload = json.loads(seen["body"]["messages"][1]["content"])
    assert payload["readme"]["path"] == "README.md"


@pytest.mark.asyncio
async def test_generator_failure_is_a_summarize_error(result):
    generator = ChatCompletionsNarrativeGenerator(
        api_key=None, transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )
    with pytest.raises(AnalysisError) as excinfo:
        await generate_narrative(generator, result)
    await generator.aclose()
    assert excinfo.value.phase == "summarize"


@pytest.mark.asyncio
async def test_unexpected_payload_is_a_summarize_error(result):
    generator = ChatCompletionsNarrativeGenerator(
        api_key=None, transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
    )
    with pytest.raises(AnalysisError) as excinfo:
        await generate_narrative(generator, result)
    await generator.aclose()
    assert "Unexpected completion payload" in str(excinfo.value)


class SlowGenerator:
    async def generate(self, payload):
        await asyncio.sleep(1)
        return {}


@pytest.mark.asyncio
async def test_generator_timeout(result):
    with pytest.raises(AnalysisError) as excinfo:
        await generate_narrative(SlowGenerator(), result, timeout=0.01)
    assert excinfo.value.phase == "summarize"
    assert "timed out" in str(excinfo.value)
