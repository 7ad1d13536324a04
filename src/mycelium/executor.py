"""SuggestionExecutor — runs a selected growth path on its routed model."""

import dataclasses
import time
from collections.abc import Callable
from enum import Enum

import structlog

from mycelium.analyzer import format_history
from mycelium.models import (
    Citation, ExecutionResult, Message, Suggestion, Tools,
)
from mycelium.providers import (
    FunctionCall, GenerationConfig, GroundingChunk, ProviderResponse, model_id_for,
)
from mycelium.router import route

log = structlog.get_logger(__name__)

ERROR_MODEL = "error"
ERROR_TEXT = "Error executing suggestion. Please try again."
NO_RESPONSE_TEXT = "No response generated."
DEFAULT_CITATION_TITLE = "Source"

TASK_INSTRUCTIONS = """INSTRUCTIONS:
Perform the suggested action comprehensively.
- If 'Create': Provide the full code, text, or artifact.
- If 'Challenge': Provide a dialectical antithesis or counter-argument.
- If 'Crystallize': Distill the conversation into its core essence/insight.
- If 'Expand'/'Connect': Use search tools if needed to provide accurate, up-to-date context.
- If 'Clarify': Ask the necessary questions to resolve ambiguity."""


class HopState(str, Enum):
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    COMPLETED = "completed"


ToolBackend = Callable[[FunctionCall], dict]


def placeholder_search_results(call: FunctionCall) -> dict:
    """Stand-in tool payload used when no retrieval backend is wired."""
    query = str(call.args.get("query", "")).strip() or "the conversation topic"
    return {
        "results": [
            {
                "title": f"Search result for '{query}'",
                "snippet": (
                    f"No live retrieval backend is configured; answer about {query} "
                    "from your own knowledge."
                ),
            },
        ],
    }


def build_task_prompt(suggestion: Suggestion, history: list[Message], last_input: str) -> str:
    context = format_history(history, uppercase_roles=False)
    context_block = f"{context}\nUSER: {last_input}" if context else f"USER: {last_input}"
    return (
        "TASK: Execute the following suggestion:\n"
        f"Type: {suggestion.type.value}\n"
        f"Title: {suggestion.title}\n"
        f"Description: {suggestion.description}\n"
        f"Reasoning: {suggestion.reasoning}\n\n"
        f"CONTEXT:\n{context_block}\n\n"
        f"{TASK_INSTRUCTIONS}"
    )


def extract_citations(chunks: list[GroundingChunk]) -> tuple[Citation, ...] | None:
    """Map grounding chunks to citations. Chunks without a uri are dropped; none -> None."""
    citations = tuple(
        Citation(title=chunk.title or DEFAULT_CITATION_TITLE, uri=chunk.uri)
        for chunk in chunks
        if chunk.uri
    )
    return citations or None


class SuggestionExecutor:
    """Builds the task request, follows at most one tool hop, normalizes the answer."""

    def __init__(
        self,
        provider,
        tool_backend: ToolBackend | None = None,
        retrieval: Tools = Tools.WEB_SEARCH,
    ):
        self.provider = provider
        self.tool_backend = tool_backend or placeholder_search_results
        self.retrieval = retrieval

    async def execute(
        self,
        suggestion: Suggestion,
        history: list[Message],
        last_input: str,
    ) -> ExecutionResult:
        """Execute ``suggestion``. Never raises: failures return the error sentinel."""
        started = time.monotonic()
        try:
            config = route(suggestion.type, self.retrieval)
            model = model_id_for(config.model_tier)
            request = GenerationConfig(
                temperature=config.temperature,
                tools=config.tools,
                thinking_budget=config.reasoning_budget,
            )
            turns = [{"role": "user", "content": build_task_prompt(suggestion, history, last_input)}]
            response = await self._run(model, turns, request)
        except Exception as e:
            log.warning("execution.failed", suggestion_type=suggestion.type.value, error=str(e))
            return ExecutionResult(
                text=ERROR_TEXT,
                model_used=ERROR_MODEL,
                execution_time_ms=_elapsed_ms(started),
            )

        return ExecutionResult(
            text=response.text or NO_RESPONSE_TEXT,
            model_used=model,
            citations=extract_citations(response.grounding_chunks),
            execution_time_ms=_elapsed_ms(started),
        )

    async def _run(
        self,
        model: str,
        turns: list[dict],
        config: GenerationConfig,
    ) -> ProviderResponse:
        response = await self.provider.generate(model, turns, config)
        state = HopState.AWAITING_TOOL_RESULT if response.function_call else HopState.COMPLETED

        if state == HopState.AWAITING_TOOL_RESULT:
            call = response.function_call
            log.info("execution.tool_hop", tool=call.name, model=model)
            payload = self.tool_backend(call)
            followup = turns + [
                {"function_call": {"name": call.name, "args": call.args}},
                {"function_response": {"name": call.name, "response": payload}},
            ]
            # Tools are withheld on the follow-up so the hop cannot repeat.
            response = await self.provider.generate(
                model, followup, dataclasses.replace(config, tools=Tools.NONE),
            )
            state = HopState.COMPLETED

        log.debug("execution.response", model=model, state=state.value)
        return response


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
