"""Unit tests for TranscriptionCoordinator."""

import pytest

from livedictate.models.transcription import (
    CopyToClipboard,
    NoAction,
    PolishMode,
    TranscriptionMode,
    TypeText,
)
from livedictate.transcription.coordinator import TranscriptionCoordinator, append_chunk
from livedictate.transcription.editing import DictationEditingService

STREAMING = TranscriptionMode.STREAMING
ON_RELEASE = TranscriptionMode.ON_RELEASE


@pytest.fixture
def coordinator():
    return TranscriptionCoordinator()


def consume(coordinator, text, mode, confirmed, now, chunk_started_at=None):
    return coordinator.consume_final(
        text,
        mode,
        confirmed,
        recording_started_at=0.0,
        chunk_started_at=now if chunk_started_at is None else chunk_started_at,
        now=now,
    )


@pytest.mark.unit
class TestStreamingMode:

    def test_first_chunk_types_delta(self, coordinator):
        result = consume(coordinator, "hello world", STREAMING, "", now=10.5, chunk_started_at=10.0)

        assert result.confirmed_text == "Hello world"
        assert result.partial_text == ""
        assert result.action == TypeText("Hello world", clipboard_after_injection="Hello world")
        assert result.metrics_text == "Hello world"
        assert result.processing_ms == 500

    def test_later_chunk_types_only_new_text(self, coordinator):
        first = consume(coordinator, "hello world", STREAMING, "", now=10.0)
        second = consume(coordinator, "how are you", STREAMING, first.confirmed_text, now=10.2)

        assert second.confirmed_text == "Hello world how are you"
        assert isinstance(second.action, TypeText)
        assert second.action.text == "how are you"
        assert second.action.clipboard_after_injection == "Hello world how are you"

    def test_pause_inserts_comma(self, coordinator):
        first = consume(coordinator, "hello world", STREAMING, "", now=10.0)
        second = consume(coordinator, "how are you", STREAMING, first.confirmed_text, now=10.7)

        assert second.confirmed_text == "Hello world, how are you"
        assert second.action.text == ", how are you"

    def test_dictated_period_attaches_to_previous_word(self, coordinator):
        first = consume(coordinator, "pago con tarjeta", STREAMING, "", now=10.0)
        second = consume(coordinator, "punto via API", STREAMING, first.confirmed_text, now=10.1)

        assert second.confirmed_text == "Pago con tarjeta. via API"

    def test_commands_are_dictation_in_streaming(self, coordinator):
        result = consume(coordinator, "undo", STREAMING, "Hello world.", now=10.0)
        assert result.confirmed_text == "Hello world. undo"
        assert isinstance(result.action, TypeText)

    def test_empty_chunk_is_noop(self, coordinator):
        result = consume(coordinator, "um", STREAMING, "Hello", now=10.0)
        assert result.confirmed_text == "Hello"
        assert result.action == NoAction()
        assert result.metrics_text is None


@pytest.mark.unit
class TestOnReleaseMode:

    def test_chunk_copies_full_transcript(self, coordinator):
        first = consume(coordinator, "hello world", ON_RELEASE, "", now=10.0)
        second = consume(coordinator, "how are you", ON_RELEASE, first.confirmed_text, now=10.1)

        assert second.action == CopyToClipboard("Hello world how are you")
        assert not isinstance(second.action, TypeText)

    def test_delete_last_sentence(self, coordinator):
        result = consume(coordinator, "delete the last sentence", ON_RELEASE, "First one. Second one.", now=10.0)

        assert result.confirmed_text == "First one."
        assert result.action == CopyToClipboard("First one.")
        assert result.metrics_text is None

    def test_undo_redo_round_trip(self, coordinator):
        deleted = consume(coordinator, "borra la última frase", ON_RELEASE, "Uno. Dos.", now=10.0)
        undone = consume(coordinator, "deshacer", ON_RELEASE, deleted.confirmed_text, now=11.0)
        redone = consume(coordinator, "rehacer", ON_RELEASE, undone.confirmed_text, now=12.0)

        assert undone.confirmed_text == "Uno. Dos."
        assert redone.confirmed_text == "Uno."

    def test_command_without_effect(self, coordinator):
        result = consume(coordinator, "undo", ON_RELEASE, "Hello.", now=10.0)

        assert result.confirmed_text == "Hello."
        assert result.action == NoAction()
        assert coordinator.last_chunk_at == 10.0

    def test_correction_replaces_last_sentence(self, coordinator):
        result = consume(coordinator, "no, I meant bring drinks", ON_RELEASE,
                         "Meet at two. Bring snacks.", now=10.25, chunk_started_at=10.0)

        assert result.confirmed_text == "Meet at two. Bring drinks."
        assert result.metrics_text == "Bring drinks."
        assert result.processing_ms == 250
        assert result.action == NoAction()

        undone = consume(coordinator, "undo", ON_RELEASE, result.confirmed_text, now=11.0)
        assert undone.confirmed_text == "Meet at two. Bring snacks."

    def test_finalized_text(self, coordinator):
        assert coordinator.finalized_on_release_text("hola coma mundo", "") == "Hola, mundo."
        assert coordinator.finalized_on_release_text("", "  partial words ") == "Partial words."
        assert coordinator.finalized_on_release_text(" ", "") is None


@pytest.mark.unit
class TestSessionState:

    def test_reset_session(self):
        editing = DictationEditingService()
        coordinator = TranscriptionCoordinator(editing)
        consume(coordinator, "hello", STREAMING, "", now=10.0)

        result = coordinator.reset_session()

        assert result.confirmed_text == ""
        assert result.partial_text == ""
        assert coordinator.last_chunk_at is None
        assert editing.undo_depth == 0

    def test_consume_partial(self, coordinator):
        result = coordinator.consume_partial("hel", "Confirmed.")
        assert result.confirmed_text == "Confirmed."
        assert result.partial_text == "hel"
        assert result.action == NoAction()

    def test_polish_mode_is_configurable(self):
        coordinator = TranscriptionCoordinator(polish_mode=PolishMode.OFF)
        result = consume(coordinator, "um hello", STREAMING, "", now=10.0)
        assert result.confirmed_text == "um hello"


@pytest.mark.unit
class TestAppendChunk:

    def test_space_joined(self):
        assert append_chunk("world", "hello ") == "hello world"

    def test_empty_existing(self):
        assert append_chunk("  hello ", "") == "hello"

    def test_empty_chunk(self):
        assert append_chunk("  ", "hello") == "hello"

    def test_line_break_preserved(self):
        assert append_chunk("\nnext line", "first line") == "first line\nnext line"

    def test_punctuation_attaches(self):
        assert append_chunk(", and more", "hello") == "hello, and more"
