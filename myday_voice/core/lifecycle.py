"""Command lifecycle state machine.

One ``CommandLifecycle`` owns at most one in-flight parsed command and walks
it from listening, through confirmation, to an execution outcome:

    IDLE -> LISTENING -> CONFIRM -> EXECUTING -> SUCCESS
                 |          |  ^        |
                 v          |  |        v
               ERROR <------+--+---- ERROR (command kept for retry)

Any non-terminal state may be cancelled, which discards the in-flight
command and returns to IDLE. Capture is the only await point; parsing and
execution run synchronously. Command-log and analytics writes are
best-effort and never change the state machine's outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .analytics import CommandAnalytics
from .capture import CaptureCategory, CaptureError, SpeechCapture
from .commandlog import CommandLog, CommandLogStore, CommandNotFoundError, Outcome
from .executor import ExecutionResult, Executor
from .intent.parser import CommandParser
from .intent.taxonomy import ParsedCommand

logger = logging.getLogger(__name__)


class LifecycleError(Exception):
    """Lifecycle API misuse."""

    pass


class InvalidTransitionError(LifecycleError):
    """The requested operation is not valid in the current state."""

    pass


class LifecycleState(str, Enum):
    """Stages of one listen -> confirm -> execute cycle."""

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    CONFIRM = "CONFIRM"
    EXECUTING = "EXECUTING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


TERMINAL_STATES = frozenset({LifecycleState.SUCCESS, LifecycleState.CANCELLED})

TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.IDLE: frozenset({LifecycleState.LISTENING, LifecycleState.CANCELLED}),
    LifecycleState.LISTENING: frozenset(
        {LifecycleState.CONFIRM, LifecycleState.ERROR, LifecycleState.CANCELLED}
    ),
    LifecycleState.CONFIRM: frozenset(
        {LifecycleState.EXECUTING, LifecycleState.LISTENING, LifecycleState.CANCELLED}
    ),
    LifecycleState.EXECUTING: frozenset(
        {LifecycleState.SUCCESS, LifecycleState.ERROR, LifecycleState.CANCELLED}
    ),
    LifecycleState.ERROR: frozenset(
        {
            LifecycleState.LISTENING,
            LifecycleState.EXECUTING,
            LifecycleState.CANCELLED,
            LifecycleState.IDLE,
        }
    ),
    LifecycleState.SUCCESS: frozenset({LifecycleState.IDLE, LifecycleState.LISTENING}),
    LifecycleState.CANCELLED: frozenset({LifecycleState.IDLE}),
}

Listener = Callable[[LifecycleState, LifecycleState], None]


@dataclass(frozen=True)
class Transition:
    """One recorded state change."""

    source: LifecycleState
    target: LifecycleState
    timestamp: datetime = field(default_factory=datetime.now)


class CommandLifecycle:
    """Drives one command at a time from capture to outcome.

    Attributes:
        capture: Speech capture engine
        parser: Transcript parser
        executor: Command executor
        store: Optional command log store (best-effort writes)
        analytics: Optional analytics aggregator (best-effort)
        user_id: Owner of captured commands
        retry_count: Execution retries from ERROR in the current cycle
    """

    def __init__(
        self,
        capture: SpeechCapture,
        parser: CommandParser,
        executor: Executor,
        *,
        store: CommandLogStore | None = None,
        analytics: CommandAnalytics | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
        language: str = "en-US",
    ) -> None:
        self.capture = capture
        self.parser = parser
        self.executor = executor
        self.store = store
        self.analytics = analytics
        self.user_id = user_id
        self.session_id = session_id
        self.language = language

        self._state = LifecycleState.IDLE
        self._parsed: ParsedCommand | None = None
        self._command_id: str | None = None
        self._error_message: str | None = None
        self._last_result: ExecutionResult | None = None
        # Bumped whenever a capture is superseded, so stale captures are ignored
        self._cycle = 0
        self._listeners: list[Listener] = []
        self.history: list[Transition] = []
        self.retry_count = 0
        # Outcome the current command was last counted with in analytics
        self._tracked: Outcome | None = None

    # =========================================================================
    # Read-only state
    # =========================================================================

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def parsed(self) -> ParsedCommand | None:
        """The command awaiting confirmation or execution."""
        return self._parsed

    @property
    def command_id(self) -> str | None:
        return self._command_id

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def last_result(self) -> ExecutionResult | None:
        return self._last_result

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register a transition listener.

        Args:
            callback: Called with (source, target) after every transition

        Returns:
            Function that unregisters the listener
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _transition(self, target: LifecycleState) -> None:
        source = self._state
        if target not in TRANSITIONS[source]:
            raise InvalidTransitionError(f"Cannot move from {source.value} to {target.value}")
        self._state = target
        self.history.append(Transition(source, target))
        logger.debug(f"Lifecycle {source.value} -> {target.value}")

        for callback in list(self._listeners):
            try:
                callback(source, target)
            except Exception as e:
                logger.warning(f"Lifecycle listener failed: {e}")

    # =========================================================================
    # Operations
    # =========================================================================

    async def listen(self) -> ParsedCommand | None:
        """Capture one utterance and parse it for confirmation.

        Starting a listen while another capture is active aborts the earlier
        one; the earlier call then returns None. Capture failures move the
        lifecycle to ERROR instead of raising.

        Returns:
            The parsed command (state CONFIRM), or None on capture failure,
            cancellation or supersession

        Raises:
            InvalidTransitionError: If a command is executing
        """
        if self._state is LifecycleState.EXECUTING:
            raise InvalidTransitionError("Cannot listen while a command is executing")

        # Invalidate any earlier capture before yielding
        self._cycle += 1
        cycle = self._cycle
        await self._stop_capture()
        if cycle != self._cycle:
            return None

        if self._state in (LifecycleState.CONFIRM, LifecycleState.ERROR):
            self._close_pending(Outcome.CANCELLED)
            self._track(Outcome.CANCELLED)
        self._clear()

        if self._state is not LifecycleState.LISTENING:
            self._transition(LifecycleState.LISTENING)

        try:
            captured = await self.capture.transcribe_once()
        except CaptureError as e:
            if cycle != self._cycle:
                return None
            logger.info(f"Capture failed: {e.category.value}")
            self._error_message = e.message
            self._transition(LifecycleState.ERROR)
            return None

        if cycle != self._cycle or self._state is not LifecycleState.LISTENING:
            logger.debug("Discarding transcript from a superseded capture")
            return None

        if not captured.transcript.strip():
            self._error_message = CaptureError(CaptureCategory.NO_SPEECH).message
            self._transition(LifecycleState.ERROR)
            return None

        parsed = self.parser.parse(
            captured.transcript,
            capture_confidence=captured.confidence,
            user_id=self.user_id,
        )
        self._parsed = parsed
        self._command_id = self._log_pending(parsed)
        self._transition(LifecycleState.CONFIRM)
        return parsed

    async def confirm(self) -> ExecutionResult:
        """Execute the pending command.

        Valid in CONFIRM, or in ERROR after a failed execution (a retry that
        reuses the same command without re-speaking).

        Returns:
            The execution result (state SUCCESS or ERROR)

        Raises:
            InvalidTransitionError: If there is no command to execute
        """
        if self._state is LifecycleState.ERROR and self._parsed is not None:
            self.retry_count += 1
        elif self._state is not LifecycleState.CONFIRM:
            raise InvalidTransitionError(f"Nothing to confirm in state {self._state.value}")

        parsed = self._parsed
        self._transition(LifecycleState.EXECUTING)

        try:
            result = self.executor.execute(
                parsed, user_id=self.user_id, command_id=self._command_id
            )
        except Exception as e:
            logger.exception("Executor raised instead of reporting failure")
            result = ExecutionResult(success=False, error=str(e) or e.__class__.__name__)

        if result.command_id:
            self._command_id = result.command_id
        self._last_result = result

        if result.success:
            self._error_message = None
            self._transition(LifecycleState.SUCCESS)
            self._track(Outcome.SUCCESS, result)
        else:
            self._error_message = result.error
            self._transition(LifecycleState.ERROR)
            self._track(Outcome.FAILED, result)
        return result

    async def retry(self) -> ParsedCommand | None:
        """Discard the current command and capture a fresh utterance.

        Raises:
            InvalidTransitionError: Unless in CONFIRM or ERROR
        """
        if self._state not in (LifecycleState.CONFIRM, LifecycleState.ERROR):
            raise InvalidTransitionError(f"Cannot retry from {self._state.value}")
        return await self.listen()

    async def cancel(self) -> None:
        """Cancel the current cycle and return to IDLE.

        Raises:
            InvalidTransitionError: If the cycle already finished
        """
        if self._state in TERMINAL_STATES:
            raise InvalidTransitionError(f"Cannot cancel from {self._state.value}")

        # Invalidate any capture in flight before yielding
        self._cycle += 1
        await self._stop_capture()

        if self._parsed is not None:
            self._close_pending(Outcome.CANCELLED)
            self._track(Outcome.CANCELLED)

        self._clear()
        self._transition(LifecycleState.CANCELLED)
        self._transition(LifecycleState.IDLE)

    def reset(self) -> None:
        """Return a finished cycle to IDLE.

        Raises:
            InvalidTransitionError: If a cycle is still in progress
        """
        if self._state is LifecycleState.IDLE:
            self._clear()
            return
        if self._state not in (LifecycleState.SUCCESS, LifecycleState.ERROR):
            raise InvalidTransitionError(f"Cannot reset from {self._state.value}; cancel instead")
        if self._state is LifecycleState.ERROR:
            self._close_pending(Outcome.CANCELLED)
            self._track(Outcome.CANCELLED)
        self._clear()
        self._transition(LifecycleState.IDLE)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _clear(self) -> None:
        self._parsed = None
        self._command_id = None
        self._error_message = None
        self._last_result = None
        self.retry_count = 0
        self._tracked = None

    async def _stop_capture(self) -> None:
        if not self.capture.is_active:
            return
        try:
            await self.capture.abort()
        except Exception as e:
            logger.warning(f"Failed to abort capture: {e}")

    def _log_pending(self, parsed: ParsedCommand) -> str | None:
        if self.store is None:
            return None
        try:
            log = self.store.create(
                CommandLog.from_parsed(
                    parsed,
                    user_id=self.user_id,
                    session_id=self.session_id,
                    language=self.language,
                    retention_days=self.store.retention_days,
                    now=self.store.clock(),
                )
            )
            return log.id
        except Exception as e:
            logger.warning(f"Failed to log pending command: {e}")
            return None

    def _close_pending(self, outcome: Outcome) -> None:
        """Move an unfinished command log (PENDING/FAILED) to ``outcome``."""
        if self.store is None or self._command_id is None:
            return
        try:
            log = self.store.get(self._command_id)
            if log.outcome in (Outcome.PENDING, Outcome.FAILED):
                self.store.set_outcome(self._command_id, outcome)
        except Exception as e:
            logger.warning(f"Failed to update command log: {e}")

    def _track(self, outcome: Outcome, result: ExecutionResult | None = None) -> None:
        """Count the current command once, revising it on later outcomes."""
        if self.analytics is None or self._parsed is None:
            return
        try:
            log = None
            if self.store is not None and self._command_id is not None:
                try:
                    log = self.store.get(self._command_id)
                except CommandNotFoundError:
                    log = None
            if log is None:
                log = CommandLog.from_parsed(
                    self._parsed,
                    user_id=self.user_id,
                    language=self.language,
                    outcome=outcome,
                    created_item=result.created_item if result and result.success else None,
                    failure_reason=result.error if result and not result.success else None,
                    now=self._parsed.timestamp,
                )
            self.analytics.track(log, previous=self._tracked)
            self._tracked = outcome
        except Exception as e:
            logger.warning(f"Failed to track command analytics: {e}")
