"""
Session analytics: a bounded local log of why and when sessions ended,
plus health statistics derived from it.

Recording is best-effort. Local persistence problems and server forwarding
failures are logged and never reach the caller.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from . import __version__
from .clock import SystemClock, iso_utc
from .local_store import ANALYTICS_KEY, LocalStore

logger = logging.getLogger(__name__)

MAX_EVENTS = 50
RECENT_WINDOW = 10
SHORT_SESSION_MS = 60_000

LOGOUT_TYPES = ('manual', 'auto', 'server_error', 'network_error')
ACTIVITY_SIGNALS = ('click', 'keypress', 'scroll', 'mousemove', 'visibilitychange')

PATTERN_FREQUENT_401 = 'Frequent 401 Unauthorized responses'
PATTERN_NETWORK = 'Network connectivity issues'
PATTERN_SHORT_SESSIONS = 'Very short sessions (< 1 minute)'

DEFAULT_USER_AGENT = f"vocab-client/{__version__} {requests.utils.default_user_agent()}"

# LogoutEvent attribute -> wire/storage key
_WIRE_KEYS = {
    'timestamp': 'timestamp',
    'type': 'type',
    'reason': 'reason',
    'user_agent': 'userAgent',
    'session_duration_ms': 'sessionDuration',
    'last_activity': 'lastActivity',
    'error_details': 'errorDetails',
    'api_endpoint': 'apiEndpoint',
    'http_status': 'httpStatus',
}
_OPTIONAL = ('error_details', 'api_endpoint', 'http_status')


@dataclass(frozen=True)
class LogoutEvent:
    timestamp: str
    type: str
    reason: str
    user_agent: str
    session_duration_ms: int
    last_activity: str
    error_details: Optional[str] = None
    api_endpoint: Optional[str] = None
    http_status: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for attr, key in _WIRE_KEYS.items():
            value = getattr(self, attr)
            if attr in _OPTIONAL and value is None:
                continue
            out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogoutEvent":
        kwargs = {attr: data.get(key) for attr, key in _WIRE_KEYS.items()}
        kwargs['session_duration_ms'] = int(kwargs.get('session_duration_ms') or 0)
        kwargs['reason'] = kwargs.get('reason') or ''
        kwargs['user_agent'] = kwargs.get('user_agent') or ''
        return cls(**kwargs)


@dataclass
class SessionHealth:
    total_logouts: int = 0
    unexpected_logouts: int = 0
    average_session_duration: float = 0.0
    common_reasons: List[Dict[str, Any]] = field(default_factory=list)
    recent_patterns: List[str] = field(default_factory=list)


def _run_detached(task: Callable[[], None]) -> None:
    threading.Thread(target=task, name='logout-analytics', daemon=True).start()


class SessionAnalytics:
    def __init__(self, store: LocalStore, api_url: str = '', clock=None,
                 http: Optional[requests.Session] = None,
                 user_agent: str = DEFAULT_USER_AGENT,
                 dispatch: Callable[[Callable[[], None]], None] = _run_detached,
                 timeout: float = 10.0):
        self.store = store
        self.api_url = api_url.rstrip('/')
        self.clock = clock or SystemClock()
        self.http = http or requests.Session()
        self.user_agent = user_agent
        self.dispatch = dispatch
        self.timeout = timeout
        # Guards the read-modify-write of the stored history
        self._lock = threading.Lock()
        self.login_time: Optional[float] = None
        self.last_activity: float = self.clock.now()

    # --- activity ---
    def _update_activity(self) -> None:
        self.last_activity = self.clock.now()

    def set_login_time(self, time: Optional[float] = None) -> None:
        self.login_time = self.clock.now() if time is None else time
        self._update_activity()

    def track_activity(self, signal: str, visible: bool = True) -> None:
        """Note a user-interaction signal. Hidden-tab visibility changes do not count."""
        if signal not in ACTIVITY_SIGNALS:
            return
        if signal == 'visibilitychange' and not visible:
            return
        self._update_activity()

    def _session_duration_ms(self) -> int:
        if self.login_time is None:
            return 0
        return int((self.clock.now() - self.login_time) * 1000)

    # --- persistence ---
    def _stored_events(self) -> List[Dict[str, Any]]:
        try:
            events = self.store.get(ANALYTICS_KEY, [])
            return events if isinstance(events, list) else []
        except Exception as e:
            logger.warning(f"Failed to read logout history: {e}")
            return []

    def _store_event(self, event: LogoutEvent) -> None:
        try:
            with self._lock:
                events = self._stored_events()
                events.insert(0, event.to_dict())
                del events[MAX_EVENTS:]
                self.store.set(ANALYTICS_KEY, events)
        except Exception as e:
            logger.warning(f"Failed to store logout event: {e}")

    def record_logout(self, type: str, reason: str, error_details: Optional[str] = None,
                      api_endpoint: Optional[str] = None,
                      http_status: Optional[int] = None) -> LogoutEvent:
        if type not in LOGOUT_TYPES:
            raise ValueError(f"Unknown logout type: {type}")
        event = LogoutEvent(
            timestamp=iso_utc(self.clock.now()),
            type=type,
            reason=reason,
            user_agent=self.user_agent,
            session_duration_ms=self._session_duration_ms(),
            last_activity=iso_utc(self.last_activity),
            error_details=error_details,
            api_endpoint=api_endpoint,
            http_status=http_status,
        )
        self._store_event(event)
        logger.warning(f"Logout recorded: {event.to_dict()}")
        self._forward(event)
        return event

    def _forward(self, event: LogoutEvent) -> None:
        try:
            token = self.store.get_token()
        except Exception as e:
            logger.debug(f"Skipping logout analytics forward: {e}")
            return
        # Only send if we were logged in
        if not token or not self.api_url:
            return
        payload = event.to_dict()

        def send() -> None:
            try:
                self.http.post(
                    f"{self.api_url}/analytics/logout",
                    json=payload,
                    headers={'Authorization': f"Bearer {token}"},
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.debug(f"Failed to send logout analytics: {e}")

        try:
            self.dispatch(send)
        except Exception as e:
            logger.debug(f"Failed to dispatch logout analytics: {e}")

    # --- reads ---
    def get_logout_history(self) -> List[LogoutEvent]:
        history = []
        for raw in self._stored_events():
            try:
                history.append(LogoutEvent.from_dict(raw))
            except (TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed logout event: {e}")
        return history

    def get_session_health(self) -> SessionHealth:
        events = self.get_logout_history()
        if not events:
            return SessionHealth()

        # Counter keeps first-seen order and most_common() sorts stably
        reasons = Counter(e.reason for e in events)
        recent = events[:RECENT_WINDOW]
        patterns = []
        if sum(1 for e in recent if e.http_status == 401) >= 3:
            patterns.append(PATTERN_FREQUENT_401)
        if sum(1 for e in recent if 'network' in e.reason.lower()) >= 3:
            patterns.append(PATTERN_NETWORK)
        if sum(1 for e in recent if e.session_duration_ms < SHORT_SESSION_MS) >= 4:
            patterns.append(PATTERN_SHORT_SESSIONS)

        return SessionHealth(
            total_logouts=len(events),
            unexpected_logouts=sum(1 for e in events if e.type != 'manual'),
            average_session_duration=sum(e.session_duration_ms for e in events) / len(events),
            common_reasons=[{'reason': r, 'count': c} for r, c in reasons.most_common()],
            recent_patterns=patterns,
        )

    def clear_history(self) -> None:
        try:
            with self._lock:
                self.store.remove(ANALYTICS_KEY)
        except Exception as e:
            logger.warning(f"Failed to clear logout history: {e}")
