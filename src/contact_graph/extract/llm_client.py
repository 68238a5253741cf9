"""Multi-provider oracle client using LiteLLM.

One request, one completion: there is no retry loop here, a failed call
is surfaced once as ``OracleCallError`` and retrying is the caller's
business. Includes cost tracking and a sliding-window rate limiter so a
busy session doesn't burn through API quota.
"""

import asyncio
import collections
import json
import logging
import re
import time
from typing import Any

import litellm

from contact_graph.errors import ExtractionParseError, OracleCallError
from contact_graph.extract.models import OracleMode, OracleReply, OracleRequest, SourceRef

logger = logging.getLogger(__name__)

# Suppress LiteLLM's verbose logging
litellm.suppress_debug_info = True

# Fence lines only; backticks inside JSON strings are content
_FENCE_RE = re.compile(r"^[ \t]*```[a-zA-Z]*[ \t]*$", re.MULTILINE)


class _RateLimiter:
    """Sliding-window rate limiter. Tracks call timestamps and sleeps
    before issuing a call that would exceed the RPM budget."""

    def __init__(self, rpm: int):
        self.rpm = rpm
        self._window = 60.0  # seconds
        self._timestamps: collections.deque[float] = collections.deque()
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        if self.rpm <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            cutoff = now - self._window
            while self._timestamps and self._timestamps[0] < cutoff:
                self._timestamps.popleft()
            if len(self._timestamps) >= self.rpm:
                sleep_for = self._window - (now - self._timestamps[0]) + 0.1
                if sleep_for > 0:
                    logger.debug(f"Rate limiter: sleeping {sleep_for:.1f}s ({self.rpm} RPM)")
                    await asyncio.sleep(sleep_for)
            self._timestamps.append(time.monotonic())


class LLMClient:
    """LiteLLM-backed oracle client with cost tracking and rate limiting."""

    def __init__(
        self,
        model: str,
        rpm: int = 40,
        timeout: int = 120,
        system_message: str = "",
    ):
        self.model = model
        self.timeout = timeout
        self.system_message = system_message
        self.total_cost_usd = 0.0
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self._limiter = _RateLimiter(rpm)

    def _build_messages(self, request: OracleRequest) -> list[dict]:
        effective_system = request.system_message or self.system_message
        messages: list[dict] = []
        if effective_system:
            messages.append({"role": "system", "content": effective_system})
        if request.images:
            content: list[dict] = [{"type": "text", "text": request.prompt}]
            for image in request.images:
                content.append({"type": "image_url", "image_url": {"url": image.data_url}})
            messages.append({"role": "user", "content": content})
        else:
            messages.append({"role": "user", "content": request.prompt})
        return messages

    def _completion_kwargs(self, request: OracleRequest, response_schema: dict | None) -> dict:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": self._build_messages(request),
            "timeout": self.timeout,
            "temperature": 0.1,
        }
        if request.mode is OracleMode.GROUNDED:
            # Web access rules out schema enforcement; JSON comes back as free text
            kwargs["web_search_options"] = {"search_context_size": "medium"}
        elif response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "contact_profile", "schema": response_schema},
            }
        return kwargs

    def _track_usage(self, response: Any) -> None:
        usage = getattr(response, "usage", None)
        if usage:
            self.total_input_tokens += usage.prompt_tokens or 0
            self.total_output_tokens += usage.completion_tokens or 0
        try:
            cost = litellm.completion_cost(completion_response=response)
        except Exception as e:
            # Unknown or local models have no price table entry
            logger.debug(f"Could not compute cost for {self.model}: {e}")
            cost = 0.0
        if cost:
            self.total_cost_usd += cost

    async def acomplete(
        self, request: OracleRequest, response_schema: dict | None = None
    ) -> OracleReply:
        """Send one request to the model and return its text and citations."""
        await self._limiter.wait()
        try:
            response = await litellm.acompletion(
                **self._completion_kwargs(request, response_schema)
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Oracle call to {self.model} failed: {e}")
            raise OracleCallError(f"Oracle call failed: {e}") from e

        self._track_usage(response)
        message = _first_message(response)
        if message is None:
            raise OracleCallError(f"{self.model} returned no choices")
        text = getattr(message, "content", None) or ""
        if not text.strip():
            raise OracleCallError(f"{self.model} returned an empty response")

        return OracleReply(text=text, citations=collect_citations(response))


def collect_citations(response: Any) -> list[SourceRef]:
    """Pull web citations out of a LiteLLM response.

    OpenAI-style search models attach ``url_citation`` annotations to the
    message; Gemini grounding arrives as grounding chunks in the hidden
    params. Both are flattened into SourceRefs.
    """
    citations: list[SourceRef] = []

    message = _first_message(response)
    for annotation in getattr(message, "annotations", None) or []:
        data = _as_dict(annotation)
        if data.get("type") != "url_citation":
            continue
        cite = _as_dict(data.get("url_citation"))
        if cite.get("url"):
            citations.append(SourceRef.from_url(cite["url"], cite.get("title", "")))

    hidden = getattr(response, "_hidden_params", None) or {}
    for metadata in hidden.get("vertex_ai_grounding_metadata") or []:
        for chunk in _as_dict(metadata).get("groundingChunks", []) or []:
            web = _as_dict(_as_dict(chunk).get("web"))
            if web.get("uri"):
                citations.append(SourceRef.from_url(web["uri"], web.get("title", "")))

    return citations


def _first_message(response: Any) -> Any:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return None
    return getattr(choices[0], "message", None)


def _as_dict(obj: Any) -> dict:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return dict(getattr(obj, "__dict__", {}))


def parse_llm_json(text: str) -> dict:
    """Parse a JSON object out of an oracle reply.

    Grounded replies are free text: the object may be wrapped in code
    fences or surrounded by commentary. Fence lines are stripped first,
    then the first decodable object is taken.
    """
    cleaned = _FENCE_RE.sub("", text).strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, dict):
        return data

    decoder = json.JSONDecoder()
    start = cleaned.find("{")
    while start != -1:
        try:
            data, _ = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(data, dict):
            return data
        start = cleaned.find("{", start + 1)

    raise ExtractionParseError(f"Could not parse JSON from oracle response: {text[:200]}...")
