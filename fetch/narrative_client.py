"""Narrative generation over a finished AnalysisResult.

The pipeline never depends on the narrative: it is produced after the result
is complete, and its failures are reported with the "summarize" phase so the
caller can retry it on its own.
"""
import asyncio
import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Protocol

import httpx

from core.errors import AnalysisError
from core.serialization import to_dict
from fetch.http_client import build_client, fetch_url
from models.reports import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
# Long snippets add tokens without adding meaning
PAYLOAD_VALUE_MAX_LENGTH = 200

SYSTEM_PROMPT = (
    "You are a senior engineer reviewing a repository. You receive a JSON analysis "
    "of the repository. Write a concise report in Markdown with these level-2 sections: "
    "Summary, Strengths, Risks, Recommendations. Only use facts present in the JSON."
)

_SECTION = re.compile(r"^##\s+(.+?)\s*$", re.MULTILINE)


class NarrativeGenerator(Protocol):
    async def generate(self, payload: Mapping[str, Any]) -> Dict[str, str]:
        ...


def split_sections(markdown: str) -> Dict[str, str]:
    """Split Markdown on level-2 headings. Text before the first heading goes under "Summary"."""
    sections: Dict[str, str] = {}
    matches = list(_SECTION.finditer(markdown))
    preamble = markdown[: matches[0].start()] if matches else markdown
    if preamble.strip():
        sections["Summary"] = preamble.strip()
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(markdown)
        body = markdown[match.end():end].strip()
        title = match.group(1)
        sections[title] = f"{sections[title]}\n\n{body}".strip() if title in sections else body
    return sections


class ChatCompletionsNarrativeGenerator:
    """Calls an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = build_client(timeout=timeout, headers=headers, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(self, payload: Mapping[str, Any]) -> Dict[str, str]:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
            ],
            "temperature": 0.2,
        }
        response = await fetch_url(self._client, f"{self.base_url}/chat/completions", method="POST", json_body=body)
        response.raise_for_status()
        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Unexpected completion payload: {e}") from e
        return split_sections(content or "")


async def generate_narrative(
    generator: NarrativeGenerator,
    result: AnalysisResult,
    timeout: float = 60.0,
) -> Dict[str, str]:
    """Run the generator on the serialized result.

    Raises:
        AnalysisError: phase "summarize" for any generator failure or timeout
    """
    payload = to_dict(result, value_max_length=PAYLOAD_VALUE_MAX_LENGTH)
    try:
        sections = await asyncio.wait_for(generator.generate(payload), timeout=timeout)
    except asyncio.CancelledError:
        raise
    except TimeoutError as e:
        raise AnalysisError(f"narrative generation timed out after {timeout}s", phase="summarize") from e
    except Exception as e:
        logger.error(f"Narrative generation failed: {e}")
        raise AnalysisError(f"narrative generation failed: {e}", phase="summarize") from e
    logger.info(f"Generated narrative with {len(sections)} sections")
    return sections
