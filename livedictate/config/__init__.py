"""Simple YAML configuration loader for LiveDictate."""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..models.transcription import TranscriptionMode, PolishMode

logger = logging.getLogger(__name__)


class LiveDictateConfig:
    """LiveDictate configuration loader."""

    def __init__(self, config_path: str):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file
        """
        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('google_cloud', 'credentials_path'),
                             ('whisper', 'models_directory'),
                             ('logging', 'file_path')):
            value = config.get(section, {}).get(key) if isinstance(config.get(section), dict) else None
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'transcription.mode').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - raises if missing."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ValueError("Google credentials path not configured in livedictate.yaml")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())


@dataclass
class DictationSettings:
    """Explicit settings passed into the dictation pipeline."""
    # audio
    sample_rate: int = 16000
    capture_chunk_size: int = 1024
    whisper_mode: bool = False
    # transcription
    mode: TranscriptionMode = TranscriptionMode.STREAMING
    language: Optional[str] = None  # None means auto-detect, locked after first chunk
    backend: str = "whisper"
    model: str = "small"
    chunk_seconds: float = 5.0
    overlap_seconds: float = 0.5
    minimum_final_seconds: float = 0.15
    final_window_seconds: float = 25.0
    model_load_timeout: float = 120.0
    warmup_retry_delay: float = 3.0
    stop_grace_seconds: float = 0.25
    # polish / editing
    polish_mode: PolishMode = PolishMode.FLUENT
    history_limit: int = 30
    # enhancement
    enhancement_enabled: bool = False
    openai_api_key: Optional[str] = None
    enhancement_model: str = "gpt-4o-mini"
    enhancement_timeout: float = 30.0

    @property
    def chunk_size(self) -> int:
        return int(round(self.chunk_seconds * self.sample_rate))

    @property
    def overlap_size(self) -> int:
        return int(round(self.overlap_seconds * self.sample_rate))

    @property
    def minimum_final_size(self) -> int:
        return int(round(self.minimum_final_seconds * self.sample_rate))

    @property
    def final_window_size(self) -> int:
        return int(round(self.final_window_seconds * self.sample_rate))

    @classmethod
    def from_config(cls, config: LiveDictateConfig) -> "DictationSettings":
        """Build settings from a loaded YAML configuration."""
        defaults = cls()
        api_key = config.get('enhancement.api_key') or os.environ.get('OPENAI_API_KEY')
        try:
            mode = TranscriptionMode(config.get('transcription.mode', defaults.mode.value))
            polish_mode = PolishMode(config.get('polish.mode', defaults.polish_mode.value))
        except ValueError as e:
            raise ValueError(f"Invalid configuration value: {e}") from e

        settings = cls(
            sample_rate=int(config.get('audio.sample_rate', defaults.sample_rate)),
            capture_chunk_size=int(config.get('audio.chunk_size', defaults.capture_chunk_size)),
            whisper_mode=bool(config.get('audio.whisper_mode', defaults.whisper_mode)),
            mode=mode,
            language=config.get('transcription.language', defaults.language),
            backend=config.get('transcription.backend', defaults.backend),
            model=config.get('transcription.model', defaults.model),
            chunk_seconds=float(config.get('transcription.chunk_seconds', defaults.chunk_seconds)),
            overlap_seconds=float(config.get('transcription.overlap_seconds', defaults.overlap_seconds)),
            minimum_final_seconds=float(config.get('transcription.minimum_final_seconds',
                                                   defaults.minimum_final_seconds)),
            final_window_seconds=float(config.get('transcription.final_window_seconds',
                                                  defaults.final_window_seconds)),
            model_load_timeout=float(config.get('transcription.model_load_timeout',
                                                defaults.model_load_timeout)),
            warmup_retry_delay=float(config.get('transcription.warmup_retry_delay',
                                                defaults.warmup_retry_delay)),
            stop_grace_seconds=float(config.get('transcription.stop_grace_seconds',
                                                defaults.stop_grace_seconds)),
            polish_mode=polish_mode,
            history_limit=int(config.get('editing.history_limit', defaults.history_limit)),
            enhancement_enabled=bool(config.get('enhancement.enabled', defaults.enhancement_enabled)),
            openai_api_key=api_key,
            enhancement_model=config.get('enhancement.model', defaults.enhancement_model),
            enhancement_timeout=float(config.get('enhancement.timeout', defaults.enhancement_timeout)),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise ValueError on settings the pipeline cannot run with."""
        if self.backend not in ("whisper", "google"):
            raise ValueError(f"Unknown transcription backend: {self.backend}")
        if self.chunk_seconds <= 0:
            raise ValueError("transcription.chunk_seconds must be positive")
        if not 0 <= self.overlap_seconds < self.chunk_seconds:
            raise ValueError("transcription.overlap_seconds must be smaller than chunk_seconds")
        if self.history_limit < 1:
            raise ValueError("editing.history_limit must be at least 1")
