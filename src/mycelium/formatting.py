"""Output formatters for messages, growth paths, logs and routes."""

import json
from dataclasses import asdict
from enum import Enum

from mycelium.models import (
    AnalysisResult, EngineState, LogEntry, Message, RouteConfig, Role,
    Suggestion, SuggestionType,
)

TYPE_GLYPHS = {
    SuggestionType.CLARIFY: "?",
    SuggestionType.EXPAND: "+",
    SuggestionType.CREATE: "#",
    SuggestionType.CONNECT: "~",
    SuggestionType.CHALLENGE: "!",
    SuggestionType.CRYSTALLIZE: "*",
}


def _short_time(ts: str) -> str:
    """Convert ISO timestamp to 'HH:MM:SS'."""
    return ts[11:19]


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def format_suggestion_compact(suggestion: Suggestion, index: int | None = None) -> str:
    """Card-like block: header line, description, reasoning."""
    glyph = TYPE_GLYPHS.get(suggestion.type, "-")
    number = f"{index}. " if index is not None else ""
    confidence = f"{suggestion.confidence * 100:.0f}%"
    return (
        f"{number}[{glyph} {suggestion.type.value.upper()}] {suggestion.title} ({confidence})\n"
        f"   {suggestion.description}\n"
        f"   logic: {suggestion.reasoning}"
    )


def format_suggestions(suggestions: list[Suggestion] | tuple[Suggestion, ...]) -> str:
    if not suggestions:
        return "(no growth paths)"
    return "\n".join(
        format_suggestion_compact(s, index=i) for i, s in enumerate(suggestions, start=1)
    )


def format_message(message: Message) -> str:
    """Message text followed by its model/category badges and citations."""
    if message.role == Role.USER:
        return f"> {message.content}"

    lines = [message.content]
    meta = message.metadata
    if meta:
        badges = []
        if meta.suggestion_type:
            badges.append(f"executed: {meta.suggestion_type.value}")
        if meta.model_used:
            badges.append(f"model: {meta.model_used}")
        if meta.execution_time_ms is not None:
            badges.append(f"{meta.execution_time_ms}ms")
        if badges:
            lines.append(f"[{' | '.join(badges)}]")
        if meta.citations:
            lines.append("Sources:")
            lines.extend(f"  - {c.title}: {c.uri}" for c in meta.citations)
    return "\n".join(lines)


def format_log_entry(entry: LogEntry) -> str:
    return f"[{_short_time(entry.timestamp)}] [{entry.log_type.value}] {entry.message}"


def format_logs(entries: list[LogEntry] | tuple[LogEntry, ...]) -> str:
    if not entries:
        return "(log empty)"
    return "\n".join(format_log_entry(e) for e in entries)


def format_status(state: EngineState) -> str:
    mode = "ACTIVE" if state.is_active else "DORMANT"
    return f"ENGINE: {mode} | STATUS: {state.status} | PATHS: {len(state.current_suggestions)}"


def format_route_compact(suggestion_type: SuggestionType | str, config: RouteConfig) -> str:
    label = suggestion_type.value if isinstance(suggestion_type, SuggestionType) else suggestion_type
    budget = config.reasoning_budget if config.reasoning_budget is not None else "-"
    return (
        f"{label}: tier={config.model_tier.value} tools={config.tools.value} "
        f"temperature={config.temperature} budget={budget}"
    )


def format_route_json(config: RouteConfig) -> str:
    return json.dumps({
        "model_tier": config.model_tier.value,
        "temperature": config.temperature,
        "tools": config.tools.value,
        "reasoning_budget": config.reasoning_budget,
    }, indent=2)


def format_analysis_compact(analysis: AnalysisResult) -> str:
    lines = [
        f"Patterns: {', '.join(analysis.patterns_detected) or '(none)'}",
        f"History depth: {analysis.history_depth.value}",
        f"Continuity: {analysis.context_continuity}",
    ]
    if analysis.dialectical_opportunity:
        lines.append(f"Dialectical opportunity: {analysis.dialectical_opportunity}")
    lines.extend(["", format_suggestions(analysis.suggestions)])
    return "\n".join(lines)


def format_analysis_json(analysis: AnalysisResult) -> str:
    return json.dumps(_jsonable(asdict(analysis)), indent=2)
