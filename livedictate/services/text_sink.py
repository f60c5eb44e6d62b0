"""Text sinks: where confirmed dictation ends up."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..models.transcription import InjectionAction, TypeText, CopyToClipboard

logger = logging.getLogger(__name__)


class TextSink(ABC):
    """Receives dictated text (keystroke injection and clipboard)."""

    @abstractmethod
    def type_text(self, text: str, clipboard_after_injection: Optional[str] = None) -> None:
        """Type ``text`` at the cursor, then leave ``clipboard_after_injection`` on the clipboard."""
        pass

    @abstractmethod
    def copy_to_clipboard(self, text: str) -> None:
        pass

    def is_available(self) -> bool:
        """False when text cannot be injected (e.g. missing accessibility permission)."""
        return True

    def perform(self, action: InjectionAction) -> None:
        """Carry out a coordinator action."""
        if isinstance(action, TypeText):
            self.type_text(action.text, action.clipboard_after_injection)
        elif isinstance(action, CopyToClipboard):
            self.copy_to_clipboard(action.text)


class ConsoleTextSink(TextSink):
    """Renders dictated text on the terminal with rich; keeps an in-memory clipboard."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.clipboard: Optional[str] = None
        self.typed: List[str] = []
        self.lock = threading.Lock()

    def type_text(self, text: str, clipboard_after_injection: Optional[str] = None) -> None:
        with self.lock:
            self.typed.append(text)
            if clipboard_after_injection is not None:
                self.clipboard = clipboard_after_injection
        self.console.print(Text(text, style="bold green"), end=" ")
        logger.debug(f"Typed {len(text)} chars")

    def copy_to_clipboard(self, text: str) -> None:
        with self.lock:
            self.clipboard = text
        logger.debug(f"Clipboard updated ({len(text)} chars)")

    def show_clipboard(self, title: str = "📋 Clipboard") -> None:
        if self.clipboard:
            self.console.print()
            self.console.print(Panel(self.clipboard, title=title, border_style="blue"))
