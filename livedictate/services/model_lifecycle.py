"""Model lifecycle coordination: deferred starts, background warm-up and retries."""

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from ..models.model_phase import ModelPhase

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 3.0


class ModelLifecycleCoordinator:
    """Keeps the speech model warm and replays a start request once it is ready.

    Every method is expected to be called from one owner thread; the retry
    timer only reaches the owner through the ``dispatch`` it is given.
    """

    def __init__(self):
        self.queued_recording_start = False
        self._retry_timer: Optional[threading.Timer] = None
        self._loader_thread: Optional[threading.Thread] = None

    @property
    def has_pending_retry(self) -> bool:
        return self._retry_timer is not None

    def should_defer_recording_start(self, phase: ModelPhase) -> bool:
        """True if the model is not ready; the start request is queued for later."""
        if phase.is_ready:
            return False
        self.queued_recording_start = True
        return True

    def clear_queued_recording_start(self) -> None:
        self.queued_recording_start = False

    def consume_queued_recording_start_if_needed(self,
                                                 is_recording: bool,
                                                 start_recording: Callable[[], None]) -> None:
        if not self.queued_recording_start or is_recording:
            return
        self.queued_recording_start = False
        logger.info("▶️ Replaying recording start queued while the model loaded")
        start_recording()

    def ensure_model_warm_in_background(self,
                                        is_recording: bool,
                                        phase: ModelPhase,
                                        load: Callable[[], None]) -> bool:
        """Start ``load`` on a background thread unless it is pointless right now.

        Returns:
            True if a load was started
        """
        if is_recording or phase.is_active or phase.is_ready:
            return False

        self._loader_thread = threading.Thread(target=load, name="ModelWarmup", daemon=True)
        self._loader_thread.start()
        logger.info("Started background model load")
        return True

    def schedule_warmup_retry_if_needed(self,
                                        is_recording: bool,
                                        on_retry: Callable[[], None],
                                        retry_delay: float = DEFAULT_RETRY_DELAY,
                                        dispatch: Optional[Callable[[Callable[[], None]], None]] = None) -> bool:
        """Schedule a single delayed retry after a failed load.

        Only one retry is pending at a time. The timer thread never touches
        coordinator state: it hands the retry to ``dispatch``, which should
        run it on the owner thread. Without ``dispatch`` the retry runs on
        the timer thread.

        Returns:
            True if a retry was scheduled
        """
        if is_recording or self._retry_timer is not None:
            return False

        def retry():
            if self._retry_timer is not timer:
                # cancelled after the timer fired
                return
            self._retry_timer = None
            logger.info("🔁 Retrying model warm-up")
            on_retry()

        run_on_owner = dispatch or (lambda func: func())
        timer = threading.Timer(retry_delay, run_on_owner, args=(retry,))
        timer.daemon = True
        self._retry_timer = timer
        timer.start()
        logger.info(f"Scheduled model warm-up retry in {retry_delay:.1f}s")
        return True

    def cancel(self) -> None:
        """Cancel a pending retry."""
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def normalized_selected_model(self,
                                  selected_model: str,
                                  valid_model_ids: Iterable[str],
                                  default_model_id: str) -> str:
        return selected_model if selected_model in set(valid_model_ids) else default_model_id

    def resolved_model_selection(self,
                                 current_selection: str,
                                 downloaded_model_ids: Set[str],
                                 default_model_id: str,
                                 quality_priority: List[str]) -> str:
        """Pick the model to use given what is already on disk.

        Keeps the current choice when it is downloaded or is the default;
        otherwise falls back to the best downloaded model by
        ``quality_priority``. With nothing downloaded, only the top-priority
        model survives as a selection.
        """
        if not downloaded_model_ids:
            if quality_priority and current_selection == quality_priority[0]:
                return current_selection
            return default_model_id

        if current_selection in downloaded_model_ids or current_selection == default_model_id:
            return current_selection

        for model_id in quality_priority:
            if model_id in downloaded_model_ids:
                return model_id

        return current_selection

    def downloaded_model_ids(self, available_model_ids: Iterable[str], models_root: Path) -> Set[str]:
        """Models under ``models_root`` that have a non-empty folder."""
        downloaded = set()
        for model_id in available_model_ids:
            folder = Path(models_root) / model_id
            if folder.is_dir() and any(folder.iterdir()):
                downloaded.add(model_id)
        return downloaded
