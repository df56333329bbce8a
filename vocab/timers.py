import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """Runs `func` every `interval` seconds on a daemon thread until stopped."""

    def __init__(self, interval: float, func: Callable[[], object], name: str = 'repeating-timer'):
        self.interval = interval
        self.func = func
        self.name = name
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def start(self) -> None:
        if self.active:
            return
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stopped,), name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Cancel future runs. A run already in progress is allowed to finish."""
        self._stopped.set()
        self._thread = None

    def _run(self, stopped: threading.Event) -> None:
        while not stopped.wait(self.interval):
            if stopped.is_set():
                break
            try:
                self.func()
            except Exception:
                logger.exception(f"[{self.name}] periodic task failed")
