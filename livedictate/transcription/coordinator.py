"""Turns decoded chunks into transcript updates and text-sink actions."""

import logging
from typing import Optional

from ..models.transcription import (
    TranscriptionMode,
    PolishMode,
    TranscriptionChunkResult,
    NoAction,
    TypeText,
    CopyToClipboard,
)
from . import text_polish
from .editing import DictationEditingService, editing_command

logger = logging.getLogger(__name__)

_ATTACHING_PUNCTUATION = ",.;:!?…"


class TranscriptionCoordinator:
    """Applies final chunks to the confirmed transcript.

    Holds the editing history and the time of the last confirmed chunk; the
    confirmed transcript itself is owned by the caller and passed in on every
    call.
    """

    def __init__(self,
                 editing_service: Optional[DictationEditingService] = None,
                 polish_mode: PolishMode = PolishMode.FLUENT):
        self.editing_service = editing_service or DictationEditingService()
        self.polish_mode = polish_mode
        self.last_chunk_at: Optional[float] = None

    def reset_session(self) -> TranscriptionChunkResult:
        self.editing_service.reset()
        self.last_chunk_at = None
        return TranscriptionChunkResult(confirmed_text="", partial_text="")

    def consume_partial(self, text: str, confirmed_text: str) -> TranscriptionChunkResult:
        return TranscriptionChunkResult(confirmed_text=confirmed_text, partial_text=text)

    def consume_final(self,
                      text: str,
                      mode: TranscriptionMode,
                      confirmed_text: str,
                      recording_started_at: Optional[float],
                      chunk_started_at: float,
                      now: float) -> TranscriptionChunkResult:
        """Apply one final chunk.

        In on-release mode the chunk may be an editing command or a spoken
        correction instead of dictation.

        Args:
            text: Filtered decoder output for the chunk
            mode: Streaming or on-release delivery
            confirmed_text: Confirmed transcript before this chunk
            recording_started_at: When the recording started, if known
            chunk_started_at: When processing of this chunk started
            now: Current timestamp

        Returns:
            TranscriptionChunkResult with the new transcript and sink action
        """
        if mode is TranscriptionMode.ON_RELEASE:
            command = editing_command(text)
            if command is not None:
                updated = self.editing_service.apply_command(command, confirmed_text)
                self.last_chunk_at = now
                if updated is None:
                    return TranscriptionChunkResult(confirmed_text=confirmed_text, partial_text="")
                return TranscriptionChunkResult(
                    confirmed_text=updated,
                    partial_text="",
                    action=CopyToClipboard(updated),
                )

            correction = text_polish.correction_replacement_if_command(text)
            if correction is not None:
                self.editing_service.snapshot(confirmed_text)
                updated = text_polish.replacing_last_sentence(confirmed_text, correction)
                self.last_chunk_at = now
                logger.info(f"✏️ Correction applied: '{correction}'")
                return TranscriptionChunkResult(
                    confirmed_text=updated,
                    partial_text="",
                    metrics_text=correction,
                    processing_ms=int((now - chunk_started_at) * 1000),
                )

        separator = text_polish.separator_for_pause(self.last_chunk_at, confirmed_text, now)
        polished = text_polish.process_chunk(
            text,
            self.polish_mode,
            is_first_chunk=not confirmed_text.strip(),
        )

        combined = (separator + polished).strip()
        if not combined:
            return TranscriptionChunkResult(confirmed_text=confirmed_text, partial_text="")

        self.editing_service.snapshot(confirmed_text)
        updated = append_chunk(combined, confirmed_text)
        self.last_chunk_at = now

        if mode is TranscriptionMode.STREAMING:
            action = TypeText(text=combined, clipboard_after_injection=updated)
        else:
            action = CopyToClipboard(updated)

        logger.debug(f"Confirmed chunk {combined!r} (recording started at {recording_started_at})")
        return TranscriptionChunkResult(
            confirmed_text=updated,
            partial_text="",
            metrics_text=combined,
            processing_ms=int((now - chunk_started_at) * 1000),
            action=action,
        )

    def finalized_on_release_text(self, confirmed_text: str, partial_text: str) -> Optional[str]:
        """Text to inject once an on-release session ends, or None if there is none."""
        confirmed = confirmed_text.strip()
        candidate = confirmed or partial_text.strip()
        if not candidate:
            return None
        polished = text_polish.process_final(candidate, self.polish_mode)
        return polished or None


def append_chunk(chunk: str, existing: str) -> str:
    """Join a polished chunk onto the confirmed transcript.

    Line breaks in the chunk are kept. A chunk that opens with punctuation
    attaches directly to the previous word.
    """
    chunk_trimmed = chunk.strip()
    if not chunk_trimmed:
        return existing
    if not existing:
        return chunk_trimmed

    if "\n" in chunk:
        return existing.strip(" \t") + "\n" + chunk_trimmed

    cleaned_existing = existing.strip()
    if not cleaned_existing:
        return chunk_trimmed
    if chunk_trimmed[0] in _ATTACHING_PUNCTUATION:
        return cleaned_existing + chunk_trimmed
    return cleaned_existing + " " + chunk_trimmed
