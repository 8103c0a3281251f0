"""
Unit Tests for Groq Analyzer
============================

Response parsing, the daily quota and error handling around the Groq client.
"""

import json
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import groq
import httpx
import pytest

from pulsefeed.ai.groq_analyzer import (
    DailyQuota,
    GroqAnalyzer,
    extract_json_candidate,
    parse_analysis_response,
    trim_to_balanced_object,
)
from pulsefeed.ai.prompts import build_analysis_prompt
from pulsefeed.database.models import AnalysisRequest, Vertical

VALID_ANALYSIS = {
    "sentiment": {"label": "bearish", "confidence": 0.7, "reasoning": "Outflows accelerate."},
    "price_impact": {"level": "medium", "direction": "down", "reasoning": "Selling pressure."},
    "summary": {"tldr": "Funds saw outflows.", "key_points": ["Outflows"], "entities": ["ETH"]},
}


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _mock_client(content=None, side_effect=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=_completion(content), side_effect=side_effect
    )
    return client


@pytest.fixture
def request_item():
    return AnalysisRequest(
        id=7,
        vertical=Vertical.CRYPTO,
        title="Ether funds record outflows",
        content="Investors pulled money from ether products for a third week.",
    )


class TestResponseParsing:
    def test_plain_json(self):
        analysis = parse_analysis_response(json.dumps(VALID_ANALYSIS))

        assert analysis.sentiment.label == "bearish"
        assert analysis.summary.entities == ["ETH"]

    def test_fenced_block(self):
        content = f"Here you go:\n```json\n{json.dumps(VALID_ANALYSIS)}\n```\nThanks"
        assert parse_analysis_response(content) is not None

    def test_surrounding_prose(self):
        content = f"Analysis follows {json.dumps(VALID_ANALYSIS)} hope this helps"
        assert parse_analysis_response(content).price_impact.direction == "down"

    def test_trailing_garbage_after_object(self):
        content = json.dumps(VALID_ANALYSIS) + ' {"extra": }'
        assert parse_analysis_response(content) is not None

    @pytest.mark.parametrize("content", [None, "", "   ", "no json here", "{broken"])
    def test_unparseable(self, content):
        assert parse_analysis_response(content) is None

    @pytest.mark.parametrize("confidence", [1.5, -0.1])
    def test_confidence_out_of_range(self, confidence):
        data = json.loads(json.dumps(VALID_ANALYSIS))
        data["sentiment"]["confidence"] = confidence
        assert parse_analysis_response(json.dumps(data)) is None

    def test_unknown_label_rejected(self):
        data = json.loads(json.dumps(VALID_ANALYSIS))
        data["price_impact"]["level"] = "extreme"
        assert parse_analysis_response(json.dumps(data)) is None

    def test_missing_section_rejected(self):
        data = {k: v for k, v in VALID_ANALYSIS.items() if k != "summary"}
        assert parse_analysis_response(json.dumps(data)) is None

    def test_extract_candidate(self):
        assert extract_json_candidate('x {"a": 1} y') == '{"a": 1}'

    def test_trim_respects_strings(self):
        assert trim_to_balanced_object('{"a": "}"} tail') == '{"a": "}"}'
        assert trim_to_balanced_object('{"a": 1') is None


class TestDailyQuota:
    def test_consume_until_exhausted(self):
        quota = DailyQuota(2, today=lambda: date(2024, 1, 1))

        quota.consume()
        assert quota.has_capacity() is True
        quota.consume()
        assert quota.has_capacity() is False
        assert quota.snapshot() == {"used": 2, "limit": 2, "remaining": 0, "percentage": 100}

    def test_resets_on_new_day(self):
        day = {"value": date(2024, 1, 1)}
        quota = DailyQuota(1, today=lambda: day["value"])
        quota.consume()
        assert quota.has_capacity() is False

        day["value"] = date(2024, 1, 2)

        assert quota.has_capacity() is True
        assert quota.used == 0


class TestPrompt:
    def test_content_truncated(self, request_item):
        long_request = request_item.model_copy(update={"content": "x" * 5000})
        prompt = build_analysis_prompt(long_request, content_chars=100)

        assert "x" * 100 in prompt
        assert "x" * 101 not in prompt

    def test_ticker_context_for_stocks(self):
        prompt = build_analysis_prompt(
            AnalysisRequest(vertical=Vertical.STOCKS, ticker="NVDA", title="Nvidia beats")
        )
        assert "Analyzing news for NVDA" in prompt
        assert "stock market" in prompt


class TestGroqAnalyzer:
    def test_unavailable_without_key(self):
        analyzer = GroqAnalyzer(api_key=None)

        assert analyzer.client is None
        assert analyzer.is_available() is False
        assert analyzer.status()["available"] is False

    @pytest.mark.asyncio
    async def test_analyze_without_key_returns_none(self, request_item):
        assert await GroqAnalyzer(api_key=None).analyze(request_item) is None

    @pytest.mark.asyncio
    async def test_successful_analysis(self, request_item):
        client = _mock_client(content=f"```json\n{json.dumps(VALID_ANALYSIS)}\n```")
        analyzer = GroqAnalyzer(api_key="test", client=client, model_name="test-model")

        analysis = await analyzer.analyze(request_item)

        assert analysis.sentiment.confidence == 0.7
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "Ether funds record outflows" in kwargs["messages"][0]["content"]
        assert analyzer.quota.used == 1

    @pytest.mark.asyncio
    async def test_invalid_reply_returns_none(self, request_item):
        analyzer = GroqAnalyzer(api_key="test", client=_mock_client(content="I cannot help"))
        assert await analyzer.analyze(request_item) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            groq.APIConnectionError(request=httpx.Request("POST", "https://api.groq.com")),
            groq.APITimeoutError(request=httpx.Request("POST", "https://api.groq.com")),
        ],
    )
    async def test_transport_errors_return_none(self, request_item, error):
        analyzer = GroqAnalyzer(api_key="test", client=_mock_client(side_effect=error))
        assert await analyzer.analyze(request_item) is None

    @pytest.mark.asyncio
    async def test_status_error_returns_none(self, request_item):
        request = httpx.Request("POST", "https://api.groq.com")
        response = httpx.Response(429, request=request)
        error = groq.RateLimitError("rate limited", response=response, body=None)
        analyzer = GroqAnalyzer(api_key="test", client=_mock_client(side_effect=error))

        assert await analyzer.analyze(request_item) is None

    @pytest.mark.asyncio
    async def test_exhausted_quota_skips_call(self, request_item):
        client = _mock_client(content=json.dumps(VALID_ANALYSIS))
        quota = DailyQuota(0)
        analyzer = GroqAnalyzer(api_key="test", client=client, quota=quota)

        assert analyzer.is_available() is False
        assert await analyzer.analyze(request_item) is None
        client.chat.completions.create.assert_not_awaited()

    def test_from_settings(self, test_settings):
        analyzer = GroqAnalyzer.from_settings(test_settings)

        assert analyzer.model_name == test_settings.ai.groq_model
        assert analyzer.content_chars == test_settings.ai.max_content_length
        assert analyzer.quota.limit == test_settings.ai.daily_request_limit

    @pytest.mark.asyncio
    async def test_malformed_response_error_returns_none(self, request_item):
        response = httpx.Response(200, request=httpx.Request("POST", "https://api.groq.com"))
        error = groq.APIResponseValidationError(response=response, body={"choices": None})
        analyzer = GroqAnalyzer(api_key="test", client=_mock_client(side_effect=error))

        assert await analyzer.analyze(request_item) is None
