"""LiveDictate - live speech-to-text dictation pipeline."""

__version__ = "0.1.0"
