"""Tests for the ContextAnalyzer."""

import json
from datetime import datetime, timezone

import pytest

from conftest import FakeProvider, analysis_payload, analysis_response
from mycelium.analyzer import (
    ANALYSIS_SCHEMA, AnalysisError, ContextAnalyzer, build_analysis_prompt,
)
from mycelium.models import HistoryDepth, Message, Role, SuggestionType
from mycelium.providers import ProviderResponse


def _msg(role, content, idx=0):
    return Message(
        id=f"m{idx}", role=role, content=content,
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc).isoformat(),
    )


def _raw(**overrides):
    return ProviderResponse(text=json.dumps(analysis_payload(**overrides)))


@pytest.fixture
def analyzer(provider, id_factory):
    return ContextAnalyzer(provider, id_factory=id_factory)


class TestPrompt:

    def test_prompt_layout(self):
        history = [_msg(Role.USER, "hello", 1), _msg(Role.MODEL, "hi there", 2)]
        prompt = build_analysis_prompt(history, "Explain quicksort")
        assert prompt.startswith("HISTORY:\nUSER: hello\nMODEL: hi there")
        assert "NEW INPUT:\nUSER: Explain quicksort" in prompt
        assert prompt.endswith("Analyze this context and generate suggestions.")

    def test_empty_history(self):
        prompt = build_analysis_prompt([], "Explain quicksort")
        assert prompt.startswith("HISTORY:\n\n\nNEW INPUT:")


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_returns_five_distinct_suggestions(self, analyzer, provider):
        provider.queue(analysis_response())
        result = await analyzer.analyze([], "Explain quicksort")

        assert len(result.suggestions) == 5
        assert len({s.type for s in result.suggestions}) == 5
        assert all(isinstance(s.type, SuggestionType) for s in result.suggestions)
        assert result.history_depth == HistoryDepth.SHALLOW
        assert result.patterns_detected == ["Question", "Imperative"]

    @pytest.mark.asyncio
    async def test_assigns_local_ids(self, analyzer, provider):
        provider.queue(analysis_response())
        result = await analyzer.analyze([], "x")
        assert [s.id for s in result.suggestions] == ["id-1", "id-2", "id-3", "id-4", "id-5"]

    @pytest.mark.asyncio
    async def test_request_uses_fast_tier_and_schema(self, analyzer, provider):
        provider.queue(analysis_response())
        await analyzer.analyze([], "x")

        call = provider.calls[0]
        assert call["model"] == "gemini-2.5-flash"
        config = call["config"]
        assert config.temperature == 0.3
        assert config.response_mime_type == "application/json"
        assert config.response_schema is ANALYSIS_SCHEMA
        assert "Mycelial Suggestion Engine" in config.system_instruction
        assert call["contents"][0]["role"] == "user"

    @pytest.mark.asyncio
    async def test_dialectical_opportunity_optional(self, analyzer, provider):
        payload = analysis_payload()
        del payload["dialecticalOpportunity"]
        provider.queue(ProviderResponse(text=json.dumps(payload)))
        result = await analyzer.analyze([], "x")
        assert result.dialectical_opportunity == ""

    @pytest.mark.asyncio
    async def test_does_not_touch_history(self, analyzer, provider):
        provider.queue(analysis_response())
        history = [_msg(Role.USER, "first", 1)]
        await analyzer.analyze(history, "second")
        assert len(history) == 1


class TestAnalysisFailures:

    @pytest.mark.asyncio
    async def test_empty_text_raises(self, analyzer, provider):
        provider.queue(ProviderResponse(text=None))
        with pytest.raises(AnalysisError, match="No analysis generated"):
            await analyzer.analyze([], "Explain quicksort")

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, analyzer, provider):
        provider.queue(ConnectionError("unreachable"))
        with pytest.raises(AnalysisError, match="unreachable"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_invalid_json(self, analyzer, provider):
        provider.queue(ProviderResponse(text="{not json"))
        with pytest.raises(AnalysisError, match="not valid JSON"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_non_object_payload(self, analyzer, provider):
        provider.queue(ProviderResponse(text="[1, 2]"))
        with pytest.raises(AnalysisError, match="JSON object"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_wrong_suggestion_count(self, analyzer, provider):
        provider.queue(_raw(types=["Clarify", "Expand", "Create", "Connect"]))
        with pytest.raises(AnalysisError, match="exactly 5"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_duplicate_types(self, analyzer, provider):
        provider.queue(_raw(types=["Clarify", "Clarify", "Create", "Connect", "Expand"]))
        with pytest.raises(AnalysisError, match="distinct"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_unknown_type(self, analyzer, provider):
        provider.queue(_raw(types=["Clarify", "Wander", "Create", "Connect", "Expand"]))
        with pytest.raises(AnalysisError, match="unknown type"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_bad_history_depth(self, analyzer, provider):
        provider.queue(_raw(historyDepth="bottomless"))
        with pytest.raises(AnalysisError, match="historyDepth"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_missing_continuity(self, analyzer, provider):
        payload = analysis_payload()
        del payload["contextContinuity"]
        provider.queue(ProviderResponse(text=json.dumps(payload)))
        with pytest.raises(AnalysisError, match="contextContinuity"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_confidence_out_of_range(self, analyzer, provider):
        payload = analysis_payload()
        payload["suggestions"][0]["confidence"] = 1.5
        provider.queue(ProviderResponse(text=json.dumps(payload)))
        with pytest.raises(AnalysisError, match="confidence"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_missing_title(self, analyzer, provider):
        payload = analysis_payload()
        del payload["suggestions"][2]["title"]
        provider.queue(ProviderResponse(text=json.dumps(payload)))
        with pytest.raises(AnalysisError, match="title"):
            await analyzer.analyze([], "x")

    @pytest.mark.asyncio
    async def test_no_retry(self, id_factory):
        provider = FakeProvider([ProviderResponse(text=None), analysis_response()])
        analyzer = ContextAnalyzer(provider, id_factory=id_factory)
        with pytest.raises(AnalysisError):
            await analyzer.analyze([], "x")
        assert len(provider.calls) == 1
