"""
Groq Analyzer
=============

Sentiment, price impact and summary analysis of news articles through the
Groq chat completions API. Every failure (missing key, exhausted quota,
transport error, unparseable output) yields ``None`` so callers can leave
the item unenriched and retry later.
"""

import json
import re
import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

import groq
from groq import AsyncGroq
from pydantic import ValidationError as PydanticValidationError

from .prompts import PROMPT_CONTENT_CHARS, build_analysis_prompt
from ..config.settings import PulseFeedSettings
from ..database.models import AIAnalysis, AnalysisRequest
from ..utils.logging import get_logger_for_component

FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DailyQuota:
    """Request counter that resets at UTC midnight."""

    def __init__(self, limit: int, today: Callable[[], date] = _utc_today):
        self.limit = limit
        self._today = today
        self._day = today()
        self.used = 0

    def _roll(self) -> None:
        current = self._today()
        if current != self._day:
            self._day = current
            self.used = 0

    def has_capacity(self) -> bool:
        self._roll()
        return self.used < self.limit

    def consume(self) -> None:
        self._roll()
        self.used += 1

    def snapshot(self) -> Dict[str, int]:
        self._roll()
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": max(self.limit - self.used, 0),
            "percentage": round(self.used * 100 / self.limit) if self.limit else 100,
        }


def extract_json_candidate(content: str) -> str:
    """Pull the JSON object out of a model reply.

    Fenced code blocks win; otherwise the span from the first ``{`` to the
    last ``}`` is taken.
    """
    text = content.strip()
    match = FENCE_PATTERN.search(text)
    if match:
        text = match.group(1).strip()

    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        text = text[first : last + 1]
    return text


def trim_to_balanced_object(text: str) -> Optional[str]:
    """Cut ``text`` after the first top-level object closes."""
    depth = 0
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[: index + 1]

    return None


def parse_analysis_response(content: Optional[str]) -> Optional[AIAnalysis]:
    """Parse and validate a model reply; malformed replies give ``None``."""
    if not content or not content.strip():
        return None

    candidate = extract_json_candidate(content)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        trimmed = trim_to_balanced_object(candidate)
        if trimmed is None:
            return None
        try:
            data = json.loads(trimmed)
        except json.JSONDecodeError:
            return None

    try:
        return AIAnalysis.model_validate(data)
    except PydanticValidationError:
        return None


class GroqAnalyzer:
    """Article analysis provider backed by Groq."""

    PROVIDER = "groq"

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "llama-3.1-8b-instant",
        temperature: float = 0.3,
        max_tokens: int = 600,
        daily_limit: int = 14000,
        timeout: float = 30.0,
        content_chars: int = PROMPT_CONTENT_CHARS,
        client: Optional[Any] = None,
        quota: Optional[DailyQuota] = None,
    ):
        """Initialize Groq analyzer.

        Args:
            api_key: Groq API key; without one the analyzer is unavailable
            model_name: Model to use (default: llama-3.1-8b-instant)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            daily_limit: Requests allowed per UTC day
            timeout: Request timeout in seconds
            content_chars: Article characters included in the prompt
            client: Pre-built async client, mainly for tests
            quota: Quota tracker, mainly for tests
        """
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.content_chars = content_chars
        self.quota = quota or DailyQuota(daily_limit)
        self.logger = get_logger_for_component("groq_analyzer")

        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncGroq(api_key=api_key, timeout=timeout, max_retries=0)
        else:
            self.client = None
            self.logger.warning("Groq API key not set, article analysis disabled")

    @classmethod
    def from_settings(cls, settings: PulseFeedSettings) -> "GroqAnalyzer":
        return cls(
            api_key=settings.ai.groq_api_key,
            model_name=settings.ai.groq_model,
            temperature=settings.ai.temperature,
            max_tokens=settings.ai.max_tokens,
            daily_limit=settings.ai.daily_request_limit,
            timeout=settings.enrichment.call_timeout,
            content_chars=settings.ai.max_content_length,
        )

    def is_available(self) -> bool:
        return self.client is not None and self.quota.has_capacity()

    def status(self) -> Dict[str, Any]:
        return {
            "provider": self.PROVIDER,
            "available": self.is_available(),
            "model": self.model_name,
            "quota": self.quota.snapshot(),
        }

    async def analyze(self, request: AnalysisRequest) -> Optional[AIAnalysis]:
        """Analyze one article.

        Args:
            request: Article fields to analyze

        Returns:
            Validated analysis, or None on any failure
        """
        if self.client is None:
            return None

        if not self.quota.has_capacity():
            snapshot = self.quota.snapshot()
            self.logger.warning(
                f"Daily analysis quota exhausted: {snapshot['used']}/{snapshot['limit']}"
            )
            return None

        start_time = time.time()
        prompt = build_analysis_prompt(request, self.content_chars)

        try:
            self.quota.consume()
            content = await self._complete(prompt)

        except groq.RateLimitError as e:
            self.logger.warning(f"Groq rate limit exceeded: {e}")
            return None
        except groq.APITimeoutError as e:
            self.logger.warning(f"Groq request timed out: {e}")
            return None
        except groq.APIConnectionError as e:
            self.logger.error(f"Groq connection error: {e}")
            return None
        except groq.APIStatusError as e:
            self.logger.error(f"Groq API error: {e.status_code} - {e.message}")
            return None
        except groq.APIError as e:
            self.logger.error(f"Groq request failed: {type(e).__name__}: {e}")
            return None

        analysis = parse_analysis_response(content)
        if analysis is None:
            preview = (content or "")[:200]
            self.logger.error(f"Unparseable analysis response for item {request.id}: {preview!r}")
            return None

        self.logger.debug(
            f"Analysis complete for item {request.id}: {analysis.sentiment.label} "
            f"({analysis.sentiment.confidence:.0%}), impact={analysis.price_impact.level}, "
            f"time={int((time.time() - start_time) * 1000)}ms"
        )
        return analysis

    async def _complete(self, prompt: str) -> Optional[str]:
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    def __str__(self) -> str:
        return f"GroqAnalyzer(model={self.model_name})"
