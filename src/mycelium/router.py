"""Model routing: which tier, tools and reasoning budget serve each suggestion category."""

from mycelium.models import (
    DeepReasoningConfig, FastConfig, RouteConfig, SuggestionType, Tools,
)

EXECUTION_TEMPERATURE = 0.7
DEEP_REASONING_BUDGET = 32768

# Synthesis and adversarial work
DEEP_REASONING_TYPES = frozenset({
    SuggestionType.CREATE, SuggestionType.CHALLENGE, SuggestionType.CRYSTALLIZE,
})
# External grounding
RETRIEVAL_TYPES = frozenset({SuggestionType.EXPAND, SuggestionType.CONNECT})


def _coerce(suggestion_type: SuggestionType | str) -> SuggestionType | None:
    try:
        return SuggestionType(suggestion_type)
    except ValueError:
        return None


def route(
    suggestion_type: SuggestionType | str,
    retrieval: Tools = Tools.WEB_SEARCH,
) -> RouteConfig:
    """Return the execution config for a suggestion category.

    Unrecognized categories get the Clarify route. ``retrieval`` picks the tool
    kind attached to Expand/Connect; it must not be Tools.NONE.
    """
    if retrieval == Tools.NONE:
        raise ValueError("retrieval must be a tool kind, not Tools.NONE")

    stype = _coerce(suggestion_type)
    if stype in DEEP_REASONING_TYPES:
        return DeepReasoningConfig(
            temperature=EXECUTION_TEMPERATURE,
            reasoning_budget=DEEP_REASONING_BUDGET,
        )
    if stype in RETRIEVAL_TYPES:
        return FastConfig(temperature=EXECUTION_TEMPERATURE, tools=retrieval)
    return FastConfig(temperature=EXECUTION_TEMPERATURE)
