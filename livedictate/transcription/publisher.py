"""Transcription publisher module for pub/sub event publishing."""

import logging
from pubsub import pub

logger = logging.getLogger(__name__)

PARTIAL_TOPIC = "transcription.partial"
FINAL_TOPIC = "transcription.final"


class TranscriptionPublisher:
    """Publishes engine output using pubsub.pub.

    Listeners receive ``text`` on the partial topic and ``text`` plus
    ``chunk_started_at`` on the final topic.
    """

    def __init__(self, partial_topic: str = PARTIAL_TOPIC, final_topic: str = FINAL_TOPIC):
        """Initialize transcription publisher.

        Args:
            partial_topic: Topic for interim text
            final_topic: Topic for filtered chunk text
        """
        self.partial_topic = partial_topic
        self.final_topic = final_topic
        logger.info(f"TranscriptionPublisher initialized with topics: {partial_topic}, {final_topic}")

    def publish_partial(self, text: str) -> None:
        pub.sendMessage(self.partial_topic, text=text)

    def publish_final(self, text: str, chunk_started_at: float) -> None:
        pub.sendMessage(self.final_topic, text=text, chunk_started_at=chunk_started_at)
        logger.debug(f"Published final chunk: '{text}'")
