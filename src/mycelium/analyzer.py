"""ContextAnalyzer — reads the substrate and sprouts five growth paths."""

import json
import uuid
from collections.abc import Callable

import structlog

from mycelium.models import (
    AnalysisResult, HistoryDepth, Message, ModelTier, Suggestion, SuggestionType,
)
from mycelium.providers import GenerationConfig, model_id_for

log = structlog.get_logger(__name__)

ANALYSIS_TEMPERATURE = 0.3
SUGGESTION_COUNT = 5

SYSTEM_INSTRUCTION_ANALYSIS = """
You are the Mycelial Suggestion Engine. Your purpose is not to answer directly, but to analyze the conversation substrate and sprout potential paths forward.

Principles:
1. Treat every input as a spore that must be compared against the entire conversation history.
2. Identify patterns: Question, Imperative, Continuation, Disagreement.
3. Assess how deeply the new input is nested in, or related to, prior turns.
4. Detect opportunities for:
   - Clarification (Ambiguity?)
   - Expansion (Depth available?)
   - Creation (Artifact needed?)
   - Connection (Related to previous topic? New context needed?)
   - Challenge (Is there a dialectical opposite?)
   - Crystallization (Can we summarize the core essence?)

Output MUST be a JSON object with:
- patternsDetected: list of strings
- historyDepth: 'shallow' | 'medium' | 'deep'
- contextContinuity: description of how this links to past
- dialecticalOpportunity: description of a potential counter-point
- suggestions: Array of exactly 5 suggestions, each of a different type from [Clarify, Expand, Create, Connect, Challenge, Crystallize].
""".strip()

_TYPE_NAMES = [t.value for t in SuggestionType]

ANALYSIS_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "patternsDetected": {"type": "ARRAY", "items": {"type": "STRING"}},
        "historyDepth": {"type": "STRING", "enum": [d.value for d in HistoryDepth]},
        "contextContinuity": {"type": "STRING"},
        "dialecticalOpportunity": {"type": "STRING"},
        "suggestions": {
            "type": "ARRAY",
            "min_items": SUGGESTION_COUNT,
            "max_items": SUGGESTION_COUNT,
            "items": {
                "type": "OBJECT",
                "properties": {
                    "type": {"type": "STRING", "enum": _TYPE_NAMES},
                    "title": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "reasoning": {"type": "STRING"},
                    "confidence": {"type": "NUMBER"},
                },
                "required": ["type", "title", "description", "reasoning", "confidence"],
            },
        },
    },
    "required": ["patternsDetected", "suggestions", "historyDepth", "contextContinuity"],
}


class AnalysisError(Exception):
    """The provider was unreachable or returned no usable analysis."""


def format_history(history: list[Message], uppercase_roles: bool = True) -> str:
    """Serialize messages as 'ROLE: content' lines."""
    lines = []
    for m in history:
        role = m.role.value.upper() if uppercase_roles else m.role.value
        lines.append(f"{role}: {m.content}")
    return "\n".join(lines)


def build_analysis_prompt(history: list[Message], new_input: str) -> str:
    return (
        f"HISTORY:\n{format_history(history)}\n\n"
        f"NEW INPUT:\nUSER: {new_input}\n\n"
        "Analyze this context and generate suggestions."
    )


def _require_str(data: dict, key: str, where: str = "analysis") -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise AnalysisError(f"Malformed {where}: '{key}' must be a string")
    return value


def _parse_suggestion(raw, suggestion_id: str) -> Suggestion:
    if not isinstance(raw, dict):
        raise AnalysisError("Malformed suggestion: expected an object")
    try:
        stype = SuggestionType(raw.get("type"))
    except ValueError:
        raise AnalysisError(f"Malformed suggestion: unknown type {raw.get('type')!r}") from None

    confidence = raw.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise AnalysisError("Malformed suggestion: 'confidence' must be a number")
    if not 0.0 <= confidence <= 1.0:
        raise AnalysisError(f"Malformed suggestion: confidence {confidence} outside [0, 1]")

    return Suggestion(
        id=suggestion_id,
        type=stype,
        title=_require_str(raw, "title", "suggestion"),
        description=_require_str(raw, "description", "suggestion"),
        reasoning=_require_str(raw, "reasoning", "suggestion"),
        confidence=float(confidence),
    )


def parse_analysis(text: str, id_factory: Callable[[], str]) -> AnalysisResult:
    """Parse and validate the provider's JSON payload. Nothing is repaired."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Analysis is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AnalysisError("Malformed analysis: expected a JSON object")

    patterns = data.get("patternsDetected")
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise AnalysisError("Malformed analysis: 'patternsDetected' must be a list of strings")

    try:
        depth = HistoryDepth(data.get("historyDepth"))
    except ValueError:
        raise AnalysisError(
            f"Malformed analysis: unknown historyDepth {data.get('historyDepth')!r}"
        ) from None

    continuity = _require_str(data, "contextContinuity")
    dialectical = data.get("dialecticalOpportunity", "")
    if not isinstance(dialectical, str):
        raise AnalysisError("Malformed analysis: 'dialecticalOpportunity' must be a string")

    raw_suggestions = data.get("suggestions")
    if not isinstance(raw_suggestions, list) or len(raw_suggestions) != SUGGESTION_COUNT:
        raise AnalysisError(f"Malformed analysis: expected exactly {SUGGESTION_COUNT} suggestions")

    suggestions = [_parse_suggestion(raw, id_factory()) for raw in raw_suggestions]
    if len({s.type for s in suggestions}) != SUGGESTION_COUNT:
        raise AnalysisError("Malformed analysis: suggestion types must be distinct")

    return AnalysisResult(
        patterns_detected=patterns,
        history_depth=depth,
        context_continuity=continuity,
        dialectical_opportunity=dialectical,
        suggestions=suggestions,
    )


class ContextAnalyzer:
    """Compares a new input (spore) against the history (substrate)."""

    def __init__(self, provider, id_factory: Callable[[], str] | None = None):
        self.provider = provider
        self.id_factory = id_factory or (lambda: f"sug-{uuid.uuid4().hex[:12]}")

    async def analyze(self, history: list[Message], new_input: str) -> AnalysisResult:
        """Return the analysis for ``new_input``. Raises AnalysisError; never retries."""
        config = GenerationConfig(
            temperature=ANALYSIS_TEMPERATURE,
            system_instruction=SYSTEM_INSTRUCTION_ANALYSIS,
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
        )
        prompt = build_analysis_prompt(history, new_input)

        try:
            response = await self.provider.generate(
                model_id_for(ModelTier.FAST),
                [{"role": "user", "content": prompt}],
                config,
            )
        except Exception as e:
            log.warning("analysis.provider_failed", error=str(e))
            raise AnalysisError(f"Provider request failed: {e}") from e

        if not response.text:
            raise AnalysisError("No analysis generated")

        result = parse_analysis(response.text, self.id_factory)
        log.debug(
            "analysis.complete",
            depth=result.history_depth.value,
            types=[s.type.value for s in result.suggestions],
        )
        return result
