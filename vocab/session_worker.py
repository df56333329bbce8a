import logging
import threading
import time

logger = logging.getLogger("vocab.session_worker")

_worker_started = False
_worker_lock = threading.Lock()


def cleanup_once(manager, metrics=None) -> int:
    """Run a single expired-session sweep. Storage errors are logged and the sweep skipped."""
    try:
        removed = manager.cleanup_expired_sessions()
    except Exception as e:
        logger.warning(f"[SessionWorker] Expired-session cleanup failed: {e}")
        return 0
    if metrics is not None and removed:
        metrics.track_expired_cleanup(removed)
    return removed


def _worker_loop(manager, interval: float, metrics) -> None:
    while True:
        cleanup_once(manager, metrics)
        time.sleep(max(5.0, interval))


def start_session_cleanup_worker(manager, interval: float = 3600, metrics=None) -> bool:
    """Start the background sweeper once per process. Returns True if this call started it."""
    global _worker_started
    with _worker_lock:
        if _worker_started:
            return False
        th = threading.Thread(target=_worker_loop, args=(manager, interval, metrics),
                              name='session-cleanup', daemon=True)
        th.start()
        _worker_started = True
    logger.info(f"[SessionWorker] Expired-session cleanup started (every {interval:.0f}s).")
    return True
