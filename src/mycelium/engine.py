"""MyceliumEngine — the analyze/execute state machine for one session."""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from mycelium.analyzer import AnalysisError, ContextAnalyzer
from mycelium.executor import SuggestionExecutor
from mycelium.models import (
    AnalysisResult, Analyzing, EngineState, ExecutionResult, Executing, Idle,
    LogEntry, LogType, Message, MessageKind, MessageMetadata, Phase, Role,
    Suggestion, SuggestionType,
)
from mycelium.store import ConversationStore

log = structlog.get_logger(__name__)

CONTINUITY_PREVIEW_CHARS = 50

# Used when the engine is dormant: reply directly, no analysis.
STANDARD_REPLY = Suggestion(
    id="std",
    type=SuggestionType.EXPAND,
    title="Reply",
    description="Standard reply",
    reasoning="Engine off",
    confidence=1.0,
)


class EngineBusyError(Exception):
    """A command arrived while an analysis or execution was in flight."""


def _default_id() -> str:
    return uuid.uuid4().hex[:12]


class MyceliumEngine:
    """Routes user input through analysis, then executes the selected growth path.

    Phases: Idle -> Analyzing -> Idle, and Idle -> Executing -> Idle. Every
    transition is recorded in the session log.
    """

    def __init__(
        self,
        analyzer: ContextAnalyzer,
        executor: SuggestionExecutor,
        store: ConversationStore | None = None,
        id_factory: Callable[[], str] | None = None,
        active: bool = True,
    ):
        self.analyzer = analyzer
        self.executor = executor
        self.store = store if store is not None else ConversationStore()
        self.id_factory = id_factory or _default_id
        self.active = active
        self.phase: Phase = Idle()
        self.last_analysis: AnalysisResult | None = None
        self._logs: list[LogEntry] = []

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    @property
    def state(self) -> EngineState:
        phase = self.phase
        return EngineState(
            is_active=self.active,
            is_analyzing=isinstance(phase, Analyzing),
            is_executing=isinstance(phase, Executing),
            logs=tuple(self._logs),
            current_suggestions=phase.suggestions if isinstance(phase, Idle) else (),
        )

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.store.messages

    def set_active(self, active: bool) -> None:
        if active == self.active:
            return
        self.active = active
        if active:
            self._log("Engine activated. Growth paths will be proposed for new input.")
        else:
            self._log("Engine dormant. Input will receive a standard reply.", LogType.WARNING)

    def toggle(self) -> bool:
        self.set_active(not self.active)
        return self.active

    async def submit_input(self, text: str) -> Message | None:
        """Record a user input and run it through the pipeline.

        Returns the recorded user message, or None for blank input.
        """
        if not text.strip():
            return None
        self._require_idle("submit input")

        history = list(self.store.messages)
        user_msg = self.store.append(self._new_message(Role.USER, text))

        if self.active:
            await self._analyze(history, text)
        else:
            await self._standard_reply(history, text)
        return user_msg

    async def select_suggestion(self, suggestion_id: str) -> Message:
        """Execute one of the current suggestions and append its result."""
        self._require_idle("select a suggestion")
        suggestion = next(
            (s for s in self.phase.suggestions if s.id == suggestion_id), None,
        )
        if suggestion is None:
            raise ValueError(f"Unknown suggestion: {suggestion_id}")

        # Clears the suggestion set before the request goes out.
        self.phase = Executing(suggestion)
        self._log(f"Selected path: {suggestion.type.value} - {suggestion.title}", LogType.SUCCESS)
        self._log("Weaving response...")

        try:
            history, last_input = self.store.split_for_execution()
            result = await self.executor.execute(suggestion, history, last_input)
            message = self._append_result(result, suggestion.type)
        finally:
            self.phase = Idle()

        if result.failed:
            self._log("Execution failed.", LogType.WARNING)
        else:
            self._log("Execution complete.", LogType.SUCCESS)
        return message

    async def _analyze(self, history: list[Message], text: str) -> None:
        self.phase = Analyzing(spore=text)
        self._log("Spore detected. Initiating substrate analysis...")

        analysis = None
        try:
            analysis = await self.analyzer.analyze(history, text)
        except AnalysisError as e:
            log.warning("engine.analysis_failed", error=str(e))
            self._log(f"Analysis failed: {e}", LogType.WARNING)
        finally:
            self.phase = Idle(tuple(analysis.suggestions) if analysis else ())

        if analysis is None:
            return

        self.last_analysis = analysis
        for pattern in analysis.patterns_detected:
            self._log(f"Pattern: {pattern}", LogType.PATTERN)
        self._log(f"History depth: {analysis.history_depth.value}")
        self._log(f"Continuity: {analysis.context_continuity[:CONTINUITY_PREVIEW_CHARS]}...")
        self._log(
            f"Generated {len(analysis.suggestions)} potential growth paths.",
            LogType.SUCCESS,
        )

    async def _standard_reply(self, history: list[Message], text: str) -> None:
        self.phase = Executing(STANDARD_REPLY)
        self._log("Engine dormant. Sending standard reply...")
        try:
            result = await self.executor.execute(STANDARD_REPLY, history, text)
            self._append_result(result, None)
        finally:
            self.phase = Idle()

        if result.failed:
            self._log("Standard reply failed.", LogType.WARNING)
        else:
            self._log("Standard reply complete.", LogType.SUCCESS)

    def _append_result(
        self,
        result: ExecutionResult,
        suggestion_type: SuggestionType | None,
    ) -> Message:
        metadata = MessageMetadata(
            suggestion_type=suggestion_type,
            model_used=result.model_used,
            execution_time_ms=result.execution_time_ms,
            citations=result.citations,
        )
        kind = MessageKind.ERROR if result.failed else MessageKind.TEXT
        return self.store.append(
            self._new_message(Role.MODEL, result.text, kind=kind, metadata=metadata)
        )

    def _new_message(
        self,
        role: Role,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
        metadata: MessageMetadata | None = None,
    ) -> Message:
        return Message(
            id=self.id_factory(),
            role=role,
            content=content,
            timestamp=self._now_iso(),
            kind=kind,
            metadata=metadata,
        )

    def _require_idle(self, action: str) -> None:
        if not isinstance(self.phase, Idle):
            state = self.state
            raise EngineBusyError(f"Cannot {action} while {state.status.lower()}")

    def _log(self, message: str, log_type: LogType = LogType.INFO) -> LogEntry:
        entry = LogEntry(
            id=self.id_factory(),
            timestamp=self._now_iso(),
            message=message,
            log_type=log_type,
        )
        self._logs.append(entry)
        return entry
