"""
Client-side session health monitor.

Wraps outbound API calls, classifies failures, runs a periodic liveness probe
against /health and decides when a session should be ended without the user
asking for it.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import requests

from .analytics import SessionAnalytics
from .errors import classify_error
from .local_store import ADMIN_KEY, USERNAME_KEY, LocalStore
from .timers import RepeatingTimer

logger = logging.getLogger(__name__)

T = TypeVar('T')

HEALTH_ENDPOINT = '/health'
DEFAULT_HEALTH_CHECK_INTERVAL = 5 * 60
DEFAULT_MAX_FAILURES = 3


class MonitorState(enum.Enum):
    IDLE = 'idle'
    MONITORING = 'monitoring'


@dataclass(frozen=True)
class ClientSessionInfo:
    has_token: bool
    username: Optional[str]
    is_admin: bool
    consecutive_failures: int
    health_check_active: bool


class SessionMonitor:
    def __init__(self, store: LocalStore, analytics: SessionAnalytics, api_url: str = '',
                 http: Optional[requests.Session] = None,
                 interval_seconds: float = DEFAULT_HEALTH_CHECK_INTERVAL,
                 max_failures: int = DEFAULT_MAX_FAILURES,
                 on_session_expired: Optional[Callable[[], None]] = None,
                 timeout: float = 10.0):
        self.store = store
        self.analytics = analytics
        self.api_url = api_url.rstrip('/')
        self.http = http or requests.Session()
        self.interval = interval_seconds
        self.max_failures = max_failures
        self.on_session_expired = on_session_expired
        self.timeout = timeout
        # Shared by the probe and every wrapped call
        self._failures = 0
        self._lock = threading.Lock()
        self._timer: Optional[RepeatingTimer] = None

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def state(self) -> MonitorState:
        if self._timer is not None and self._timer.active:
            return MonitorState.MONITORING
        return MonitorState.IDLE

    def _record_failure(self) -> int:
        with self._lock:
            self._failures += 1
            return self._failures

    def reset_failure_count(self) -> None:
        with self._lock:
            self._failures = 0

    def should_auto_logout(self) -> bool:
        return self._failures >= self.max_failures

    # --- liveness probe ---
    def start_health_check(self) -> None:
        if self.state is MonitorState.MONITORING:
            return
        self._timer = RepeatingTimer(self.interval, self.perform_health_check, name='session-health-check')
        self._timer.start()
        logger.info(f"Session health check started (every {self.interval:.0f}s)")

    def stop_health_check(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer = None
        logger.info("Session health check stopped")

    def perform_health_check(self) -> Optional[bool]:
        """
        Run one probe.

        Returns None when there is no session to check, True when the server
        confirmed the session and False otherwise.
        """
        token = self.store.get_token()
        if not token:
            return None

        try:
            response = self.http.get(
                f"{self.api_url}{HEALTH_ENDPOINT}",
                headers={'Authorization': f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self._probe_failed(str(e))
            return False

        if response.status_code == 401:
            self.analytics.record_logout(
                'server_error', 'Session expired during health check',
                http_status=401, api_endpoint=HEALTH_ENDPOINT,
            )
            self.handle_session_expired('Session expired during health check')
            return False
        if response.ok:
            self.reset_failure_count()
            return True
        self._probe_failed(f"HTTP {response.status_code}")
        return False

    def _probe_failed(self, detail: str) -> None:
        failures = self._record_failure()
        logger.warning(f"Health check failed ({failures}/{self.max_failures}): {detail}")
        if failures >= self.max_failures:
            self.analytics.record_logout(
                'network_error', 'Multiple health check failures', error_details=detail,
            )

    def handle_session_expired(self, reason: str = 'Session expired') -> None:
        """Tear down local session state after the server rejected the token."""
        logger.warning(f"Forcing logout: {reason}")
        try:
            self.store.clear_auth()
        finally:
            if self.on_session_expired is not None:
                self.on_session_expired()

    # --- wrapped calls ---
    def wrap_api_call(self, call: Callable[[], T], endpoint: str) -> T:
        try:
            result = call()
        except Exception as error:
            self._handle_api_error(error, endpoint)
            raise
        self.reset_failure_count()
        return result

    def _handle_api_error(self, error: Exception, endpoint: str) -> None:
        classification = classify_error(error)
        if classification.status == 401:
            self.analytics.record_logout(
                'server_error', classification.reason,
                http_status=401, api_endpoint=endpoint, error_details=str(error),
            )
        logger.error(
            f"API Error [{endpoint}]: status={classification.status} "
            f"type={classification.event_type} reason={classification.reason} message={error}"
        )
        self._record_failure()

    def get_session_info(self) -> ClientSessionInfo:
        return ClientSessionInfo(
            has_token=bool(self.store.get_token()),
            username=self.store.get(USERNAME_KEY),
            is_admin=self.store.get(ADMIN_KEY) == 'true',
            consecutive_failures=self._failures,
            health_check_active=self.state is MonitorState.MONITORING,
        )
