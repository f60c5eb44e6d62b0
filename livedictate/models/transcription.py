"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Union


class TranscriptionMode(Enum):
    """How confirmed text reaches the sink."""
    STREAMING = "streaming"    # Type every confirmed chunk as it arrives
    ON_RELEASE = "on_release"  # Buffer the session, type once on stop


class PolishMode(Enum):
    OFF = "off"
    BASIC = "basic"
    FLUENT = "fluent"


@dataclass
class TranscriptionSegment:
    """One decoded segment returned by a backend."""
    text: str
    start: float = 0.0
    end: float = 0.0


@dataclass
class TranscriptionResult:
    """Result of decoding one audio buffer."""
    segments: List[TranscriptionSegment]
    processing_time: float
    timestamp: datetime
    service: str
    language: Optional[str] = None
    is_final: bool = True
    chunk_id: Optional[str] = None

    @property
    def text(self) -> str:
        """Non-empty segment texts joined with single spaces."""
        parts = [s.text.strip() for s in self.segments if s.text and s.text.strip()]
        return " ".join(parts)


@dataclass(frozen=True)
class NoAction:
    """Nothing to hand to the text sink."""


@dataclass(frozen=True)
class TypeText:
    """Type ``text`` at the cursor, then leave ``clipboard_after_injection`` on the clipboard."""
    text: str
    clipboard_after_injection: Optional[str] = None


@dataclass(frozen=True)
class CopyToClipboard:
    text: str


InjectionAction = Union[NoAction, TypeText, CopyToClipboard]


@dataclass(frozen=True)
class TranscriptionChunkResult:
    """What the coordinator decided for one partial or final chunk."""
    confirmed_text: str
    partial_text: str
    metrics_text: Optional[str] = None
    processing_ms: Optional[int] = None
    action: InjectionAction = field(default_factory=NoAction)


@dataclass
class SessionMetrics:
    """Runtime metrics for the current dictation session."""
    chunk_count: int = 0
    total_characters: int = 0
    last_chunk_processing_ms: Optional[int] = None
    average_chunk_processing_ms: Optional[int] = None
    first_text_latency_ms: Optional[int] = None

    def reset(self) -> None:
        self.chunk_count = 0
        self.total_characters = 0
        self.last_chunk_processing_ms = None
        self.average_chunk_processing_ms = None
        self.first_text_latency_ms = None

    def register_chunk(self,
                       text: str,
                       processing_ms: int,
                       session_started_at: Optional[float],
                       now: float) -> None:
        """Record one confirmed chunk.

        Args:
            text: Text that was confirmed
            processing_ms: Time from chunk start to confirmation
            session_started_at: Unix timestamp the recording started, if known
            now: Current Unix timestamp
        """
        self.chunk_count += 1
        self.total_characters += len(text)
        self.last_chunk_processing_ms = processing_ms

        if session_started_at is not None and self.first_text_latency_ms is None:
            self.first_text_latency_ms = int((now - session_started_at) * 1000)

        if self.average_chunk_processing_ms is None:
            self.average_chunk_processing_ms = processing_ms
        else:
            total = self.average_chunk_processing_ms * (self.chunk_count - 1) + processing_ms
            self.average_chunk_processing_ms = total // self.chunk_count
