"""Model lifecycle phase."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ModelPhaseKind(Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ModelPhase:
    """Where the speech model is in its download/load lifecycle.

    Use the constructors (``ModelPhase.idle()``, ``ModelPhase.downloading(0.4)``,
    ...) rather than building instances by hand. Two phases are equal when
    their kind and payload are equal.
    """
    kind: ModelPhaseKind = ModelPhaseKind.IDLE
    progress: Optional[float] = None
    step: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "ModelPhase":
        return cls(ModelPhaseKind.IDLE)

    @classmethod
    def downloading(cls, progress: float) -> "ModelPhase":
        return cls(ModelPhaseKind.DOWNLOADING, progress=min(max(progress, 0.0), 1.0))

    @classmethod
    def loading(cls, step: str) -> "ModelPhase":
        return cls(ModelPhaseKind.LOADING, step=step)

    @classmethod
    def ready(cls) -> "ModelPhase":
        return cls(ModelPhaseKind.READY)

    @classmethod
    def error(cls, message: str) -> "ModelPhase":
        return cls(ModelPhaseKind.ERROR, message=message)

    @property
    def is_active(self) -> bool:
        """True while a download or load is in progress."""
        return self.kind in (ModelPhaseKind.DOWNLOADING, ModelPhaseKind.LOADING)

    @property
    def is_ready(self) -> bool:
        return self.kind is ModelPhaseKind.READY

    @property
    def download_progress(self) -> Optional[float]:
        return self.progress if self.kind is ModelPhaseKind.DOWNLOADING else None

    @property
    def loading_step(self) -> Optional[str]:
        return self.step if self.kind is ModelPhaseKind.LOADING else None

    @property
    def error_message(self) -> Optional[str]:
        return self.message if self.kind is ModelPhaseKind.ERROR else None

    def __str__(self) -> str:
        if self.kind is ModelPhaseKind.DOWNLOADING:
            return f"downloading({self.progress:.0%})"
        if self.kind is ModelPhaseKind.LOADING:
            return f"loading({self.step})"
        if self.kind is ModelPhaseKind.ERROR:
            return f"error({self.message})"
        return self.kind.value
