"""Speech capture boundary.

Capture is the only asynchronous step of a command cycle. Implementations
return one transcript with a confidence, or raise a categorized
``CaptureError``. ``TypedCapture`` is the keyboard fallback used when no
speech engine is available.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

# Confidence reported for typed (not spoken) input
TYPED_CONFIDENCE = 0.5


class CaptureCategory(str, Enum):
    """Why a capture attempt failed."""

    NOT_ALLOWED = "not-allowed"
    NO_SPEECH = "no-speech"
    ABORTED = "aborted"
    NETWORK = "network"
    UNKNOWN = "unknown"


CAPTURE_MESSAGES: dict[CaptureCategory, str] = {
    CaptureCategory.NOT_ALLOWED: (
        "Microphone access denied. Allow microphone permissions in your browser."
    ),
    CaptureCategory.NO_SPEECH: "No speech detected. Please try again and speak clearly.",
    CaptureCategory.ABORTED: "Speech recognition was aborted. Please try again.",
    CaptureCategory.NETWORK: "Network error during speech recognition.",
    CaptureCategory.UNKNOWN: "Speech recognition error",
}

# Engine error codes that map onto a category other than their own name
_CODE_ALIASES: dict[str, CaptureCategory] = {
    "service-not-allowed": CaptureCategory.NOT_ALLOWED,
}


class CaptureError(Exception):
    """A capture attempt failed; recoverable by retrying."""

    def __init__(self, category: CaptureCategory, message: str | None = None) -> None:
        self.category = category
        self.message = message or CAPTURE_MESSAGES[category]
        super().__init__(self.message)

    @classmethod
    def from_code(cls, code: str) -> CaptureError:
        """Build an error from an engine error code ("no-speech", ...)."""
        key = code.strip().lower()
        category = _CODE_ALIASES.get(key)
        if category is None:
            try:
                category = CaptureCategory(key)
            except ValueError:
                category = CaptureCategory.UNKNOWN
        return cls(category)


@dataclass(frozen=True)
class CaptureResult:
    """One captured utterance."""

    transcript: str
    confidence: float


class SpeechCapture(ABC):
    """A speech-to-text engine that yields one utterance per call."""

    @abstractmethod
    async def transcribe_once(self) -> CaptureResult:
        """Capture one utterance.

        Raises:
            CaptureError: Categorized capture failure
        """

    @abstractmethod
    async def abort(self) -> None:
        """Stop an in-progress capture, if any."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether a capture is in progress."""


class TypedCapture(SpeechCapture):
    """Keyboard fallback: reads one line of text instead of listening.

    Attributes:
        reader: Blocking function returning one line (``input`` by default)
        confidence: Confidence reported for typed text
    """

    def __init__(
        self,
        reader: Callable[[], str] | None = None,
        confidence: float = TYPED_CONFIDENCE,
    ) -> None:
        self.reader = reader or (lambda: input("> "))
        self.confidence = confidence
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    async def transcribe_once(self) -> CaptureResult:
        self._active = True
        try:
            text = await asyncio.to_thread(self.reader)
        except EOFError as e:
            raise CaptureError(CaptureCategory.ABORTED) from e
        finally:
            self._active = False

        text = (text or "").strip()
        if not text:
            raise CaptureError(CaptureCategory.NO_SPEECH)
        return CaptureResult(transcript=text, confidence=self.confidence)

    async def abort(self) -> None:
        # A blocking read cannot be interrupted; the next result is ignored
        self._active = False
