"""
Turn a free-text request into a StructuredQuery using a language model.

The model is asked for a bare JSON object, but local runners routinely wrap it
in chatter, nest it in different response envelopes, or return garbage. Every
failure degrades to a keyword-only fallback query so a search still happens.

Pipeline:
1. build_instruction(prompt)       -> text sent to the model
2. extract_response_text(body)     -> first envelope strategy that yields text
3. extract_json_object(text)       -> Parsed(dict) | Unrecognized(reason)
4. coerce_structured_query(data)   -> validated StructuredQuery
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from domain.models import (
    DEFAULT_LIMIT,
    DEFAULT_RADIUS_M,
    Coordinate,
    Fallback,
    Intent,
    ParseResult,
    Recognized,
    StructuredQuery,
)
from services.errors import UpstreamModelError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3.2:3b"
DEFAULT_TEMPERATURE = 0.2

# Google Places caps: nearby search radius and one page of results.
MAX_RADIUS_M = 50000
MAX_LIMIT = 20

INSTRUCTION_TEMPLATE = '''
You are a parser assistant. Receive a user text prompt and output ONLY valid JSON (no extra text).
Fields:
- intent: "find" or "directions" or "details"
- place_type: (e.g. "restaurant", "cafe", "museum") or null
- keywords: additional free-text keywords or null
- radius_m: integer radius in meters or null
- limit: integer max results
- location: {{ "lat": number, "lng": number }} or null  (if null, server will use fallback)
- destination_place_id: place id to route to when intent is "directions", otherwise null
Return JSON only.
User prompt: """{prompt}"""
'''


def build_instruction(prompt: str) -> str:
    return INSTRUCTION_TEMPLATE.format(prompt=prompt)


# ----------------------------
# Response envelope strategies
# ----------------------------

def _as_text(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _plain_string(body: Any) -> Optional[str]:
    return body if isinstance(body, str) and body else None


def _output_field(body: Any) -> Optional[str]:
    return _as_text(body.get("output")) if isinstance(body, dict) else None


def _response_field(body: Any) -> Optional[str]:
    # Ollama /api/generate
    return _as_text(body.get("response")) if isinstance(body, dict) else None


def _generated_text(body: Any) -> Optional[str]:
    # Hugging Face text-generation inference
    if isinstance(body, list) and body and isinstance(body[0], dict):
        return _as_text(body[0].get("generated_text"))
    return None


def _chat_completion(body: Any) -> Optional[str]:
    # OpenAI-compatible chat completions (Open WebUI, vLLM, llama.cpp server)
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if isinstance(message, dict):
        return _as_text(message.get("content"))
    return _as_text(choices[0].get("text"))


def _stringify(body: Any) -> Optional[str]:
    return json.dumps(body)


RESPONSE_TEXT_STRATEGIES: List[Callable[[Any], Optional[str]]] = [
    _plain_string,
    _output_field,
    _response_field,
    _generated_text,
    _chat_completion,
    _stringify,
]


def extract_response_text(body: Any) -> str:
    """Return the text from the first envelope strategy that recognizes body."""
    for strategy in RESPONSE_TEXT_STRATEGIES:
        text = strategy(body)
        if text is not None:
            return text
    return ""


# ----------------------------
# JSON object extraction
# ----------------------------

@dataclass(frozen=True)
class Parsed:
    data: Dict[str, Any]


@dataclass(frozen=True)
class Unrecognized:
    reason: str


JsonExtraction = Union[Parsed, Unrecognized]


def _decode_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index of the '}' closing the '{' at start, or None if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_json_object(text: str) -> JsonExtraction:
    """
    Find the first complete JSON object embedded in text.

    Top-level '{' spans are tried in order with raw_decode, so nested objects
    and trailing prose are both handled. A span that fails to decode is
    skipped whole; objects nested inside it are never returned on their own.
    A span that never closes (truncated output) ends the scan. Then the
    greedy first-'{' to last-'}' span and the whole text are tried.
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except ValueError:
            value = None
        if isinstance(value, dict):
            return Parsed(value)
        end = _balanced_end(text, start)
        if end is None:
            break
        start = text.find("{", end + 1)

    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        data = _decode_object(text[first:last + 1])
        if data is not None:
            return Parsed(data)

    data = _decode_object(text)
    if data is not None:
        return Parsed(data)
    return Unrecognized("no JSON object in model output")


# ----------------------------
# Validation
# ----------------------------

def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _positive_int(value: Any, cap: int) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or value != value:
        return None
    if value in (float("inf"), float("-inf")):
        return None
    number = int(value)
    if number <= 0:
        return None
    return min(number, cap)


def _intent(value: Any) -> Intent:
    if isinstance(value, str):
        try:
            return Intent(value.strip().lower())
        except ValueError:
            pass
    return Intent.FIND


def coerce_structured_query(data: Dict[str, Any]) -> StructuredQuery:
    """Validate a decoded model object, nulling anything of the wrong shape."""
    return StructuredQuery(
        intent=_intent(data.get("intent")),
        place_type=_clean_str(data.get("place_type")),
        keywords=_clean_str(data.get("keywords")),
        radius_m=_positive_int(data.get("radius_m"), MAX_RADIUS_M),
        limit=_positive_int(data.get("limit"), MAX_LIMIT),
        location=Coordinate.from_dict(data.get("location")),
        destination_place_id=_clean_str(data.get("destination_place_id")),
    )


def fallback_query(prompt: str, fallback_location: Optional[Coordinate]) -> StructuredQuery:
    """Keyword-only query carrying the raw prompt; same shape as a parsed one."""
    return StructuredQuery(
        intent=Intent.FIND,
        place_type=None,
        keywords=prompt,
        radius_m=DEFAULT_RADIUS_M,
        limit=DEFAULT_LIMIT,
        location=fallback_location,
        destination_place_id=None,
    )


class IntentParser:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_url: str,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout: float = 20.0,
    ):
        self.http_client = http_client
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _complete(self, prompt: str) -> Any:
        """POST the instruction to the model endpoint and return the decoded body."""
        payload = {
            "model": self.model,
            "prompt": build_instruction(prompt),
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        try:
            resp = await self.http_client.post(
                self.api_url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamModelError(f"model request failed: {exc.__class__.__name__}") from exc
        try:
            return resp.json()
        except ValueError:
            return resp.text

    async def parse_result(self, prompt: str, fallback_location: Optional[Coordinate]) -> ParseResult:
        try:
            body = await self._complete(prompt)
            extraction = extract_json_object(extract_response_text(body))
            if isinstance(extraction, Unrecognized):
                reason = extraction.reason
            else:
                query = coerce_structured_query(extraction.data)
                if query.location is None and fallback_location is not None:
                    query = replace(query, location=fallback_location)
                return Recognized(query)
        except UpstreamModelError as exc:
            reason = str(exc)
        except Exception as exc:
            reason = f"unexpected {exc.__class__.__name__}: {exc}"

        logger.warning(
            "LLM parse failed, using fallback query (prompt_len=%d): %s", len(prompt), reason
        )
        return Fallback(fallback_query(prompt, fallback_location), reason=reason)

    async def parse(self, prompt: str, fallback_location: Optional[Coordinate]) -> StructuredQuery:
        """Never raises; a failed parse yields the fallback query."""
        result = await self.parse_result(prompt, fallback_location)
        return result.query
