"""Filters for decoder output that is not real speech.

Speech decoders trained on subtitled video tend to invent boilerplate on
silence or music ("thanks for watching", "[music]", ...). Those candidates
are dropped before they ever reach the transcript.
"""

import logging

logger = logging.getLogger(__name__)

HALLUCINATION_PHRASES = frozenset([
    "[música]", "[music]", "[musica]",
    "[aplausos]", "[applause]",
    "[risas]", "[laughter]",
    "[silencio]", "[silence]",
    "[inaudible]",
    "(música)", "(music)", "(musica)",
    "gracias por ver",
    "subtítulos",
    "thanks for watching",
    "subscribe",
    "suscríbete",
    "like and subscribe",
    "dale like",
])

MUSIC_SYMBOLS = ("♪", "♫")

LEADING_ARTIFACT_PREFIXES = ("thank you", "thanks")

_ARTIFACT_TRAILING_CHARS = ",.!?:;…-–—"

MIN_CANDIDATE_LENGTH = 3


def is_hallucination(text: str) -> bool:
    """Return True if ``text`` should be discarded as decoder noise.

    The denylist is matched against the whole trimmed candidate (trailing
    punctuation ignored), so a sentence that merely contains "subscribe"
    is kept.
    """
    candidate = text.strip().lower()

    if len(candidate) < MIN_CANDIDATE_LENGTH:
        return True

    if candidate in HALLUCINATION_PHRASES or \
            candidate.rstrip(_ARTIFACT_TRAILING_CHARS + " ") in HALLUCINATION_PHRASES:
        return True

    if any(symbol in candidate for symbol in MUSIC_SYMBOLS):
        return True

    if (candidate.startswith("[") and candidate.endswith("]")) or \
            (candidate.startswith("(") and candidate.endswith(")")):
        return True

    if not any(ch.isalnum() for ch in candidate):
        return True

    return False


def sanitize_leading_artifacts(text: str) -> str:
    """Strip a spurious "thank you"/"thanks" opener and the punctuation after it.

    Returns "" when nothing remains, otherwise the trimmed remainder. Only
    the first matching prefix is removed, and only as a whole word.
    """
    trimmed = text.strip()
    lowered = trimmed.lower()

    for prefix in LEADING_ARTIFACT_PREFIXES:
        if not lowered.startswith(prefix):
            continue
        remainder = trimmed[len(prefix):]
        if remainder and remainder[0].isalnum():
            continue
        index = 0
        while index < len(remainder) and (remainder[index].isspace()
                                          or remainder[index] in _ARTIFACT_TRAILING_CHARS):
            index += 1
        remainder = remainder[index:]
        logger.debug(f"Stripped leading artifact '{prefix}' from decoder output")
        return remainder.strip()

    return trimmed
