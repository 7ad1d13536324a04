"""Data models for the Mycelial suggestion engine."""

from dataclasses import dataclass, field
from enum import Enum


class SuggestionType(str, Enum):
    CLARIFY = "Clarify"
    EXPAND = "Expand"
    CREATE = "Create"
    CONNECT = "Connect"
    CHALLENGE = "Challenge"
    CRYSTALLIZE = "Crystallize"


class Role(str, Enum):
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class MessageKind(str, Enum):
    TEXT = "text"
    TOOL_RESULT = "tool_result"
    ERROR = "error"


class HistoryDepth(str, Enum):
    SHALLOW = "shallow"
    MEDIUM = "medium"
    DEEP = "deep"


class LogType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    PATTERN = "pattern"


class ModelTier(str, Enum):
    FAST = "fast"
    DEEP_REASONING = "deep_reasoning"


class Tools(str, Enum):
    NONE = "none"
    WEB_SEARCH = "web_search"
    FUNCTION_TOOLS = "function_tools"


@dataclass(frozen=True)
class Citation:
    title: str
    uri: str


@dataclass(frozen=True)
class MessageMetadata:
    suggestion_type: SuggestionType | None = None
    model_used: str | None = None
    execution_time_ms: int | None = None
    citations: tuple[Citation, ...] | None = None


@dataclass(frozen=True)
class Message:
    id: str
    role: Role
    content: str
    timestamp: str
    kind: MessageKind = MessageKind.TEXT
    metadata: MessageMetadata | None = None


@dataclass(frozen=True)
class Suggestion:
    id: str
    type: SuggestionType
    title: str
    description: str
    reasoning: str
    confidence: float


@dataclass
class AnalysisResult:
    patterns_detected: list[str]
    history_depth: HistoryDepth
    context_continuity: str
    dialectical_opportunity: str
    suggestions: list[Suggestion] = field(default_factory=list)


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: str
    message: str
    log_type: LogType = LogType.INFO


@dataclass(frozen=True)
class ExecutionResult:
    text: str
    model_used: str
    citations: tuple[Citation, ...] | None = None
    execution_time_ms: int | None = None

    @property
    def failed(self) -> bool:
        return self.model_used == "error"


# --- Route configurations (one variant per model tier) ---

@dataclass(frozen=True)
class FastConfig:
    temperature: float
    tools: Tools = Tools.NONE

    @property
    def model_tier(self) -> ModelTier:
        return ModelTier.FAST

    @property
    def reasoning_budget(self) -> None:
        return None


@dataclass(frozen=True)
class DeepReasoningConfig:
    temperature: float
    reasoning_budget: int

    @property
    def model_tier(self) -> ModelTier:
        return ModelTier.DEEP_REASONING

    @property
    def tools(self) -> Tools:
        return Tools.NONE


RouteConfig = FastConfig | DeepReasoningConfig


# --- Engine phases ---

@dataclass(frozen=True)
class Idle:
    suggestions: tuple[Suggestion, ...] = ()


@dataclass(frozen=True)
class Analyzing:
    spore: str


@dataclass(frozen=True)
class Executing:
    suggestion: Suggestion


Phase = Idle | Analyzing | Executing


@dataclass(frozen=True)
class EngineState:
    is_active: bool
    is_analyzing: bool
    is_executing: bool
    logs: tuple[LogEntry, ...]
    current_suggestions: tuple[Suggestion, ...]

    @property
    def status(self) -> str:
        if self.is_executing:
            return "EXECUTING"
        if self.is_analyzing:
            return "ANALYZING"
        return "IDLE"
