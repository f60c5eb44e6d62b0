"""Spoken editing commands and the undo/redo history behind them."""

import re
import logging
from enum import Enum
from typing import List, Optional, Pattern, Tuple

from .text_polish import normalize_whitespace, removing_last_sentence

logger = logging.getLogger(__name__)


class EditingCommand(Enum):
    DELETE_LAST_SENTENCE = "delete_last_sentence"
    UNDO = "undo"
    REDO = "redo"


def _command_rules(command: EditingCommand, *patterns: str) -> Tuple[Tuple[Pattern, EditingCommand], ...]:
    return tuple((re.compile(p, re.IGNORECASE), command) for p in patterns)


# Evaluated in order against the whole normalized, lower-cased utterance.
EDITING_COMMAND_RULES: Tuple[Tuple[Pattern, EditingCommand], ...] = (
    _command_rules(
        EditingCommand.DELETE_LAST_SENTENCE,
        r"^(borra|elimina|quita)\s+(la\s+)?[uú]ltima\s+frase$",
        r"^delete\s+(the\s+)?last\s+sentence$",
        r"^apaga\s+(a\s+)?[uú]ltima\s+frase$",
        r"^supprime\s+(la\s+)?derni[eè]re\s+phrase$",
        r"^l[öo]sche\s+(den\s+)?letzten\s+satz$",
    )
    + _command_rules(
        EditingCommand.UNDO,
        r"^deshacer$",
        r"^undo$",
        r"^desfazer$",
        r"^annuler$",
        r"^r[üu]ckg[aä]ngig$",
    )
    + _command_rules(
        EditingCommand.REDO,
        r"^(rehacer|repite)$",
        r"^(redo|repeat)$",
        r"^(refazer|repetir)$",
        r"^(r[eé]tablir|r[eé]p[eé]ter)$",
        r"^(wiederholen|wiederherstellen)$",
    )
)


def editing_command(text: str) -> Optional[EditingCommand]:
    """Return the editing command spoken as the whole of ``text``, if any."""
    normalized = normalize_whitespace(text).lower()
    if not normalized:
        return None

    for pattern, command in EDITING_COMMAND_RULES:
        if pattern.search(normalized):
            return command
    return None


class DictationEditingService:
    """Bounded undo/redo history for the confirmed transcript."""

    def __init__(self, history_limit: int = 30):
        """Initialize editing service.

        Args:
            history_limit: Maximum number of undo snapshots kept; oldest are evicted first
        """
        self.history_limit = history_limit
        self._undo_stack: List[str] = []
        self._redo_stack: List[str] = []

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def reset(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()

    def snapshot(self, current_text: str) -> None:
        """Save ``current_text`` before a mutation. Clears the redo history."""
        self._undo_stack.append(current_text)
        overflow = len(self._undo_stack) - self.history_limit
        if overflow > 0:
            del self._undo_stack[:overflow]
        self._redo_stack.clear()

    def apply_command(self, command: EditingCommand, current_text: str) -> Optional[str]:
        """Apply an editing command to the confirmed transcript.

        Args:
            command: Command to apply
            current_text: Confirmed transcript before the command

        Returns:
            The new transcript, or None if the command changed nothing
        """
        if command is EditingCommand.DELETE_LAST_SENTENCE:
            updated = removing_last_sentence(current_text)
            if updated == current_text:
                return None
            self.snapshot(current_text)
            logger.info("✂️ Deleted last sentence")
            return updated

        if command is EditingCommand.UNDO:
            if not self._undo_stack:
                logger.debug("Undo requested with empty history")
                return None
            previous = self._undo_stack.pop()
            self._redo_stack.append(current_text)
            logger.info("↩️ Undo")
            return previous

        if not self._redo_stack:
            logger.debug("Redo requested with empty history")
            return None
        following = self._redo_stack.pop()
        self._undo_stack.append(current_text)
        logger.info("↪️ Redo")
        return following
