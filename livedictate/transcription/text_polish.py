"""Text polish pipeline applied to confirmed transcription chunks.

Every entry point runs the same normalization first (whitespace, spoken
line/paragraph commands, dictated punctuation, punctuation spacing), then
applies the extra steps of the selected ``PolishMode``:

- ``off``: normalization only
- ``basic``: capitalization (and terminal punctuation / numbered lists at the end)
- ``fluent``: ``basic`` plus filler-word removal

Substitution rules are kept as ordered ``(pattern, replacement)`` tables so a
language can be added by appending rows.
"""

import re
import logging
from typing import List, Optional, Tuple, Pattern

from ..models.transcription import PolishMode

logger = logging.getLogger(__name__)

SENTENCE_TERMINATORS = ".!?"
PAUSE_NEUTRAL_ENDINGS = ".,;:!?…"
TERMINAL_PUNCTUATION = ".!?…"

LONG_PAUSE_SECONDS = 1.1
SHORT_PAUSE_SECONDS = 0.55

SPOKEN_FORMATTING_RULES: Tuple[Tuple[Pattern, str], ...] = (
    (re.compile(r"\b(new line|nueva l[ií]nea|nova linha|nouvelle ligne|neue zeile)\b",
                re.IGNORECASE), "\n"),
    (re.compile(r"\b(new paragraph|nuevo p[aá]rrafo|novo par[aá]grafo|nouveau paragraphe|neuer absatz)\b",
                re.IGNORECASE), "\n\n"),
)

# Multi-word names go first so "punto y coma" is not consumed by "punto" or "coma".
DICTATED_PUNCTUATION_RULES: Tuple[Tuple[Pattern, str], ...] = (
    (re.compile(r"\b(question mark|signo de pregunta|ponto de interroga[cç][aã]o"
                r"|point d['’]interrogation|fragezeichen)\b", re.IGNORECASE), "?"),
    (re.compile(r"\b(exclamation mark|signo de exclamaci[oó]n|ponto de exclama[cç][aã]o"
                r"|point d['’]exclamation|ausrufezeichen)\b", re.IGNORECASE), "!"),
    (re.compile(r"\b(semicolon|punto y coma|ponto e v[ií]rgula|point virgule|semikolon)\b",
                re.IGNORECASE), ";"),
    (re.compile(r"\b(colon|dos puntos|dois pontos|deux points|doppelpunkt)\b",
                re.IGNORECASE), ":"),
    (re.compile(r"\b(comma|coma|v[ií]rgula|virgule|komma)\b", re.IGNORECASE), ","),
    (re.compile(r"\b(period|punto|ponto|point|punkt)\b", re.IGNORECASE), "."),
)

FILLER_WORDS = re.compile(r"\b(uh+|um+|eh+|emm+|mmm+|este+|ehm+)\b", re.IGNORECASE)

CORRECTION_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"^(?:no[\s,]+)?(?:quise decir|correcci[oó]n|corrijo)\s+(.+)$", re.IGNORECASE),
    re.compile(r"^(?:no[\s,]+)?(?:i meant|correction)\s+(.+)$", re.IGNORECASE),
)

NUMBERED_LIST_ITEM = re.compile(r"(?:^|\s)(\d+)\.\s*(.*?)(?=\s\d+\.\s|$)", re.DOTALL)

_LIST_ITEM_TRIM = ".,;:!?-–— "


def separator_for_pause(last_chunk_at: Optional[float], previous_text: str, now: float) -> str:
    """Choose the glue between the previous chunk and the next one.

    A long pause reads as a sentence break, a shorter one as a comma.

    Args:
        last_chunk_at: Timestamp of the previous confirmed chunk, or None
        previous_text: Text confirmed so far
        now: Current timestamp

    Returns:
        "", " ", ", " or ". "
    """
    if last_chunk_at is None:
        return ""
    trimmed = previous_text.strip()
    if not trimmed:
        return ""
    if trimmed[-1] in PAUSE_NEUTRAL_ENDINGS:
        return " "

    gap = now - last_chunk_at
    if gap >= LONG_PAUSE_SECONDS:
        return ". "
    if gap >= SHORT_PAUSE_SECONDS:
        return ", "
    return " "


def _normalize(text: str) -> str:
    value = normalize_whitespace_preserving_line_breaks(text)
    value = apply_spoken_formatting_commands(value)
    value = apply_dictated_punctuation(value)
    return normalize_punctuation_spacing(value)


def process_chunk(text: str, mode: PolishMode, is_first_chunk: bool) -> str:
    """Polish one incremental chunk. No terminal punctuation is enforced."""
    value = _normalize(text)

    if mode is PolishMode.OFF:
        return value

    if mode is PolishMode.FLUENT:
        value = remove_filler_words(value)
        value = normalize_punctuation_spacing(value)

    if is_first_chunk:
        value = capitalize_initial_letter(value)
    return value


def process_final(text: str, mode: PolishMode) -> str:
    """Polish a whole transcript once the session has ended."""
    value = _normalize(text)
    if not value or mode is PolishMode.OFF:
        return value

    if mode is PolishMode.FLUENT:
        value = remove_filler_words(value)
        value = normalize_whitespace_preserving_line_breaks(value)

    value = capitalize_sentence_starts(value)
    numbered = format_numbered_list_if_detected(value)
    if numbered is not None:
        return numbered
    return ensure_terminal_punctuation(value)


def correction_replacement_if_command(text: str) -> Optional[str]:
    """Return the polished replacement if ``text`` is a spoken correction.

    "no, I meant X" / "quise decir X" yields ``X`` polished in fluent mode.
    """
    normalized = normalize_whitespace(text)
    if not normalized:
        return None

    for pattern in CORRECTION_PATTERNS:
        match = pattern.match(normalized)
        if not match:
            continue
        polished = process_final(match.group(1), PolishMode.FLUENT)
        if polished:
            return polished

    return None


def _terminator_positions(text: str) -> List[int]:
    return [i for i, ch in enumerate(text) if ch in SENTENCE_TERMINATORS]


def replacing_last_sentence(text: str, replacement: str) -> str:
    trimmed = text.strip()
    replacement_trimmed = replacement.strip()
    if not replacement_trimmed:
        return trimmed
    if not trimmed:
        return replacement_trimmed

    positions = _terminator_positions(trimmed)
    if len(positions) >= 2:
        prefix = trimmed[:positions[-2] + 1].strip()
        return f"{prefix} {replacement_trimmed}"
    return replacement_trimmed


def removing_last_sentence(text: str) -> str:
    """Drop the final sentence; a text with fewer than two sentences becomes empty."""
    trimmed = text.strip()
    positions = _terminator_positions(trimmed)
    if len(positions) < 2:
        return ""
    return trimmed[:positions[-2] + 1].strip()


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_whitespace_preserving_line_breaks(text: str) -> str:
    lines = re.sub(r"\r\n?", "\n", text).split("\n")
    lines = [re.sub(r"[ \t]+", " ", line).strip(" \t") for line in lines]
    joined = re.sub(r"\n{3,}", "\n\n", "\n".join(lines))
    return joined.strip()


def _apply_rules(text: str, rules: Tuple[Tuple[Pattern, str], ...]) -> str:
    value = f" {text} "
    for pattern, replacement in rules:
        value = pattern.sub(f" {replacement} ", value)
    return normalize_whitespace_preserving_line_breaks(value)


def apply_spoken_formatting_commands(text: str) -> str:
    return _apply_rules(text, SPOKEN_FORMATTING_RULES)


def apply_dictated_punctuation(text: str) -> str:
    return _apply_rules(text, DICTATED_PUNCTUATION_RULES)


def remove_filler_words(text: str) -> str:
    return normalize_whitespace_preserving_line_breaks(FILLER_WORDS.sub("", text))


def normalize_punctuation_spacing(text: str) -> str:
    value = re.sub(r"\s+([,.;:!?])", r"\1", text)
    value = re.sub(r"([,.;:!?])([^\s\d])", r"\1 \2", value)
    return normalize_whitespace_preserving_line_breaks(value)


def capitalize_initial_letter(text: str) -> str:
    for i, ch in enumerate(text):
        if ch.isalpha():
            return text[:i] + ch.upper() + text[i + 1:]
    return text


def capitalize_sentence_starts(text: str) -> str:
    chars = list(text)
    should_capitalize = True
    for i, ch in enumerate(chars):
        if should_capitalize and ch.isalpha():
            chars[i] = ch.upper()
            should_capitalize = False
            continue
        if ch in SENTENCE_TERMINATORS or ch == "\n":
            should_capitalize = True
    return "".join(chars)


def ensure_terminal_punctuation(text: str) -> str:
    if not text or text[-1] in TERMINAL_PUNCTUATION:
        return text
    return text + "."


def format_numbered_list_if_detected(text: str) -> Optional[str]:
    """Reformat "for 1. apples 2. bananas" as one "n. Item" line per entry.

    Returns None unless there are at least two non-empty items numbered
    consecutively from 1.
    """
    matches = list(NUMBERED_LIST_ITEM.finditer(text))
    if len(matches) < 2:
        return None

    items = []
    for match in matches:
        item = _clean_list_item(match.group(2))
        if item:
            items.append((int(match.group(1)), item))

    if len(items) < 2 or items[0][0] != 1:
        return None
    for previous, current in zip(items, items[1:]):
        if current[0] != previous[0] + 1:
            return None

    logger.debug(f"Detected numbered list with {len(items)} items")
    return "\n".join(f"{number}. {item}" for number, item in items)


def _clean_list_item(raw: str) -> str:
    item = normalize_whitespace(raw).strip(_LIST_ITEM_TRIM)
    return capitalize_initial_letter(item)
