"""Generative-AI provider boundary: model registry, request/response shapes, GenAI client."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from dotenv import load_dotenv
from google import genai
from google.genai import types

from mycelium.models import ModelTier, Tools

log = structlog.get_logger(__name__)


@dataclass
class ModelConfig:
    provider: str
    model_id: str
    env_key: str
    override_env: str
    thinking: bool = False


MODELS: dict[ModelTier, ModelConfig] = {
    ModelTier.FAST: ModelConfig(
        "google", "gemini-2.5-flash", "GOOGLE_API_KEY", "MYCELIUM_FAST_MODEL",
    ),
    ModelTier.DEEP_REASONING: ModelConfig(
        "google", "gemini-3-pro-preview", "GOOGLE_API_KEY", "MYCELIUM_DEEP_MODEL",
        thinking=True,
    ),
}

# Accepted in place of GOOGLE_API_KEY
FALLBACK_KEY_ENV = "GEMINI_API_KEY"

SEARCH_FUNCTION_NAME = "search_documents"


@dataclass
class GenerationConfig:
    temperature: float
    system_instruction: str | None = None
    response_mime_type: str | None = None
    response_schema: dict | None = None
    tools: Tools = Tools.NONE
    thinking_budget: int | None = None


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GroundingChunk:
    uri: str | None = None
    title: str | None = None


@dataclass
class ProviderResponse:
    text: str | None = None
    function_call: FunctionCall | None = None
    grounding_chunks: list[GroundingChunk] = field(default_factory=list)


def _load_env() -> None:
    """Load the nearest .env file, walking up from the CWD."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        env_file = parent / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


def _get_api_key(config: ModelConfig) -> str:
    """Get API key from environment, raising clear error if missing."""
    _load_env()
    key = os.environ.get(config.env_key) or os.environ.get(FALLBACK_KEY_ENV)
    if not key:
        raise ValueError(
            f"API key not found: set {config.env_key} (or {FALLBACK_KEY_ENV}) "
            f"environment variable or add it to a .env file."
        )
    return key


def model_id_for(tier: ModelTier) -> str:
    """Resolve the model identifier for a tier, honouring env overrides."""
    config = MODELS[tier]
    return os.environ.get(config.override_env) or config.model_id


def _search_declaration() -> types.FunctionDeclaration:
    return types.FunctionDeclaration(
        name=SEARCH_FUNCTION_NAME,
        description="Search documents and the web for context relevant to the conversation.",
        parameters=types.Schema(
            type="OBJECT",
            properties={"query": types.Schema(type="STRING")},
            required=["query"],
        ),
    )


def _to_contents(turns: list[dict]) -> list[types.Content]:
    """Convert role/content turns (plus tool turns) to Google's content format."""
    contents = []
    for turn in turns:
        if "function_call" in turn:
            call = turn["function_call"]
            part = types.Part(function_call=types.FunctionCall(
                name=call["name"], args=call.get("args") or {},
            ))
            contents.append(types.Content(role="model", parts=[part]))
        elif "function_response" in turn:
            resp = turn["function_response"]
            part = types.Part(function_response=types.FunctionResponse(
                name=resp["name"], response=resp["response"],
            ))
            contents.append(types.Content(role="user", parts=[part]))
        else:
            role = "user" if turn["role"] == "user" else "model"
            contents.append(types.Content(
                role=role, parts=[types.Part(text=turn["content"])],
            ))
    return contents


def _to_config(config: GenerationConfig) -> types.GenerateContentConfig:
    kwargs: dict[str, Any] = {"temperature": config.temperature}
    if config.system_instruction:
        kwargs["system_instruction"] = config.system_instruction
    if config.response_mime_type:
        kwargs["response_mime_type"] = config.response_mime_type
    if config.response_schema:
        kwargs["response_schema"] = config.response_schema
    if config.thinking_budget is not None:
        kwargs["thinking_config"] = types.ThinkingConfig(
            thinking_budget=config.thinking_budget,
        )
    if config.tools == Tools.WEB_SEARCH:
        kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
    elif config.tools == Tools.FUNCTION_TOOLS:
        kwargs["tools"] = [types.Tool(function_declarations=[_search_declaration()])]
    return types.GenerateContentConfig(**kwargs)


def normalize_response(response) -> ProviderResponse:
    """Reduce an SDK response to the fields the engine consumes.

    Text is joined from the first candidate's non-thought parts; only the
    first part is inspected for a function call.
    """
    candidates = response.candidates or []
    if not candidates:
        return ProviderResponse()

    first = candidates[0]
    parts = (first.content.parts if first.content else None) or []

    text = "".join(p.text for p in parts if p.text and not p.thought)

    function_call = None
    if parts and parts[0].function_call:
        fc = parts[0].function_call
        function_call = FunctionCall(name=fc.name, args=dict(fc.args or {}))

    chunks = []
    metadata = first.grounding_metadata
    if metadata and metadata.grounding_chunks:
        for chunk in metadata.grounding_chunks:
            web = chunk.web
            chunks.append(GroundingChunk(
                uri=web.uri if web else None,
                title=web.title if web else None,
            ))

    return ProviderResponse(
        text=text or None,
        function_call=function_call,
        grounding_chunks=chunks,
    )


class GenAIProvider:
    """Async Google GenAI client. Constructed once by the host and injected."""

    def __init__(self, api_key: str | None = None, client: genai.Client | None = None):
        if client is None:
            client = genai.Client(api_key=api_key or _get_api_key(MODELS[ModelTier.FAST]))
        self.client = client

    async def generate(
        self,
        model: str,
        contents: list[dict],
        config: GenerationConfig,
    ) -> ProviderResponse:
        """Send one request and return the normalized response.

        Args:
            model: Model identifier (see model_id_for)
            contents: List of {"role": "user"|"model", "content": "..."} turns,
                optionally followed by function_call / function_response turns
            config: Generation settings for this request
        """
        log.debug("provider.request", model=model, turns=len(contents), tools=config.tools.value)
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=_to_contents(contents),
            config=_to_config(config),
        )
        return normalize_response(response)
