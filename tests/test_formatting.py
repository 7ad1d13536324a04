"""Tests for output formatters."""

import json

from mycelium.formatting import (
    format_analysis_json, format_log_entry, format_logs, format_message,
    format_route_compact, format_route_json, format_status, format_suggestions,
)
from mycelium.models import (
    AnalysisResult, Citation, EngineState, HistoryDepth, LogEntry, LogType,
    Message, MessageMetadata, Role, SuggestionType,
)
from mycelium.router import route


class TestSuggestions:

    def test_numbered_cards(self, make_suggestion):
        s = make_suggestion(SuggestionType.CHALLENGE, title="Push back", confidence=0.85)
        out = format_suggestions([s])
        assert out.startswith("1. [! CHALLENGE] Push back (85%)")
        assert "logic: Some reasoning" in out

    def test_empty(self):
        assert format_suggestions([]) == "(no growth paths)"


class TestMessages:

    def test_user_message(self):
        msg = Message(id="1", role=Role.USER, content="hi", timestamp="2026-01-01T00:00:00+00:00")
        assert format_message(msg) == "> hi"

    def test_model_message_badges_and_sources(self):
        msg = Message(
            id="2", role=Role.MODEL, content="Answer", timestamp="2026-01-01T00:00:00+00:00",
            metadata=MessageMetadata(
                suggestion_type=SuggestionType.EXPAND,
                model_used="gemini-2.5-flash",
                execution_time_ms=120,
                citations=(Citation(title="Doc", uri="https://doc.example"),),
            ),
        )
        out = format_message(msg)
        assert "[executed: Expand | model: gemini-2.5-flash | 120ms]" in out
        assert "  - Doc: https://doc.example" in out


class TestLogs:

    def test_log_line(self):
        entry = LogEntry(id="1", timestamp="2026-02-23T14:30:05.123+00:00",
                         message="Pattern: Question", log_type=LogType.PATTERN)
        assert format_log_entry(entry) == "[14:30:05] [pattern] Pattern: Question"

    def test_empty_log(self):
        assert format_logs([]) == "(log empty)"

    def test_status(self):
        state = EngineState(is_active=False, is_analyzing=False, is_executing=True,
                            logs=(), current_suggestions=())
        assert format_status(state) == "ENGINE: DORMANT | STATUS: EXECUTING | PATHS: 0"


class TestRoutes:

    def test_compact(self):
        out = format_route_compact(SuggestionType.CREATE, route(SuggestionType.CREATE))
        assert out == "Create: tier=deep_reasoning tools=none temperature=0.7 budget=32768"

    def test_json(self):
        data = json.loads(format_route_json(route(SuggestionType.EXPAND)))
        assert data == {
            "model_tier": "fast", "temperature": 0.7,
            "tools": "web_search", "reasoning_budget": None,
        }


class TestAnalysis:

    def test_json_uses_enum_values(self, make_suggestion):
        analysis = AnalysisResult(
            patterns_detected=["Question"],
            history_depth=HistoryDepth.MEDIUM,
            context_continuity="links back",
            dialectical_opportunity="",
            suggestions=[make_suggestion(SuggestionType.CONNECT)],
        )
        data = json.loads(format_analysis_json(analysis))
        assert data["history_depth"] == "medium"
        assert data["suggestions"][0]["type"] == "Connect"
