"""Unit tests for text sinks and the transcription publisher."""

import io

import pytest
from pubsub import pub
from rich.console import Console

from livedictate.models.transcription import CopyToClipboard, NoAction, TypeText
from livedictate.services.text_sink import ConsoleTextSink
from livedictate.transcription.publisher import TranscriptionPublisher


@pytest.fixture
def sink():
    return ConsoleTextSink(Console(file=io.StringIO()))


@pytest.mark.unit
class TestConsoleTextSink:

    def test_type_text_sets_clipboard(self, sink):
        sink.type_text("Hola mundo", clipboard_after_injection="Hola mundo")

        assert sink.typed == ["Hola mundo"]
        assert sink.clipboard == "Hola mundo"
        assert "Hola mundo" in sink.console.file.getvalue()

    def test_type_text_keeps_clipboard(self, sink):
        sink.copy_to_clipboard("previous")
        sink.type_text("next")

        assert sink.clipboard == "previous"

    def test_perform_actions(self, sink):
        sink.perform(TypeText(text="uno", clipboard_after_injection="uno"))
        sink.perform(CopyToClipboard("uno dos"))
        sink.perform(NoAction())

        assert sink.typed == ["uno"]
        assert sink.clipboard == "uno dos"

    def test_show_clipboard(self, sink):
        sink.show_clipboard()
        assert sink.console.file.getvalue() == ""

        sink.copy_to_clipboard("texto final")
        sink.show_clipboard()
        assert "texto final" in sink.console.file.getvalue()


@pytest.mark.unit
class TestTranscriptionPublisher:

    def test_publishes_partial_and_final(self):
        received = []

        def on_partial(text):
            received.append(("partial", text))

        def on_final(text, chunk_started_at):
            received.append(("final", text, chunk_started_at))

        publisher = TranscriptionPublisher("sinktest.partial", "sinktest.final")
        pub.subscribe(on_partial, "sinktest.partial")
        pub.subscribe(on_final, "sinktest.final")
        try:
            publisher.publish_partial("hola")
            publisher.publish_final("hola mundo", 12.5)
        finally:
            pub.unsubscribe(on_partial, "sinktest.partial")
            pub.unsubscribe(on_final, "sinktest.final")

        assert received == [("partial", "hola"), ("final", "hola mundo", 12.5)]
