"""Reconcile a re-transcription of the session tail with already-confirmed text."""

import unicodedata
from typing import List, Optional

MAX_ANCHOR_WORDS = 10
MIN_ANCHOR_WORDS = 2


def _is_punctuation(ch: str) -> bool:
    return unicodedata.category(ch).startswith("P")


def _normalize_word(word: str) -> str:
    """Lower-case a word and trim punctuation from both ends."""
    start, end = 0, len(word)
    while start < end and _is_punctuation(word[start]):
        start += 1
    while end > start and _is_punctuation(word[end - 1]):
        end -= 1
    return word[start:end].lower()


def _split_words(text: str) -> List[str]:
    return text.split()


def extract_new_tail(retranscribed: str, already_confirmed: str) -> Optional[str]:
    """Return the words of ``retranscribed`` that come after ``already_confirmed``.

    The last few confirmed words (up to ten, at least two) are used as an
    anchor and searched for in the re-transcription from the end. Words are
    compared case-insensitively with surrounding punctuation removed.

    Args:
        retranscribed: Decoder output for the tail window of the session
        already_confirmed: Text already delivered to the user

    Returns:
        The new words joined by single spaces, None when nothing new was
        said, or the whole re-transcription when no anchor is found.
    """
    full = retranscribed.strip()
    confirmed = already_confirmed.strip()

    if not full:
        return None
    if not confirmed:
        return full

    confirmed_words = _split_words(confirmed)
    full_words = _split_words(full)
    normalized_confirmed = [_normalize_word(w) for w in confirmed_words]
    normalized_full = [_normalize_word(w) for w in full_words]

    # A short repeat of the confirmed text says nothing new even without an anchor
    if normalized_full == normalized_confirmed:
        return None
    if len(confirmed_words) < MIN_ANCHOR_WORDS or len(full_words) < MIN_ANCHOR_WORDS:
        return full

    max_anchor = min(MAX_ANCHOR_WORDS, len(confirmed_words), len(full_words))

    for anchor_len in range(max_anchor, MIN_ANCHOR_WORDS - 1, -1):
        anchor = normalized_confirmed[-anchor_len:]
        for i in range(len(full_words) - anchor_len, -1, -1):
            if normalized_full[i:i + anchor_len] != anchor:
                continue
            delta_start = i + anchor_len
            if delta_start >= len(full_words):
                return None
            return " ".join(full_words[delta_start:])

    return full
