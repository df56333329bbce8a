"""
API client for the vocab backend, plus the per-process context that wires the
response cache, session analytics and session monitor together.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .analytics import SessionAnalytics
from .cache import ResponseCache
from .config import Settings
from .errors import ApiError, NetworkError, UnauthorizedError, error_for_status
from .local_store import LocalStore
from .session_monitor import SessionMonitor

logger = logging.getLogger(__name__)


class VocabClient:
    def __init__(self, base_url: str, store: LocalStore, cache: ResponseCache,
                 analytics: SessionAnalytics, monitor: SessionMonitor,
                 http: Optional[requests.Session] = None, timeout: float = 15.0):
        self.base_url = base_url.rstrip('/')
        self.store = store
        self.cache = cache
        self.analytics = analytics
        self.monitor = monitor
        self.http = http or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop('headers', None) or {})
        token = self.store.get_token()
        if token:
            headers['Authorization'] = f"Bearer {token}"
        try:
            response = self.http.request(method, f"{self.base_url}{path}", headers=headers,
                                         timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise NetworkError(f"Network error: {e}", None, path) from e
        if not response.ok:
            raise error_for_status(response.status_code, response.text, path)
        return response

    # --- auth ---
    def register(self, username: str, password: str) -> None:
        self._request('POST', '/register', json={'username': username, 'password': password})

    def login(self, username: str, password: str) -> bool:
        """Log in and start monitoring. Returns the admin flag."""
        data = self._request('POST', '/login', json={'username': username, 'password': password}).json()
        is_admin = bool(data.get('is_admin'))
        self.store.save_auth(data['token'], username, is_admin)
        self.analytics.set_login_time()
        self.monitor.reset_failure_count()
        self.monitor.start_health_check()
        return is_admin

    def logout(self, type: str = 'manual', reason: str = 'User logged out') -> None:
        """End the session: record why, tell the server, then drop all local session state."""
        if self.store.get_token():
            self.analytics.record_logout(type, reason)
            try:
                self._request('POST', '/logout')
            except ApiError as e:
                logger.debug(f"Server logout failed: {e}")
        self.clear_local_session()

    def force_logout(self, reason: str) -> None:
        self.logout('auto', reason)

    def clear_local_session(self) -> None:
        # Cached answers may depend on the user's custom instructions
        self.cache.clear()
        self.monitor.stop_health_check()
        self.store.clear_auth()

    def is_admin(self) -> bool:
        return self.monitor.get_session_info().is_admin

    # --- cached upstream calls ---
    def openai_call(self, word: str, action: str) -> str:
        cached = self.cache.get(word, action)
        if cached is not None:
            return cached
        result = self.monitor.wrap_api_call(
            lambda: self._request('GET', '/openai', params={'word': word, 'action': action}).text,
            '/openai',
        )
        self.cache.set(word, action, result)
        return result

    def tts_call(self, text: str) -> str:
        """Return base64 audio for `text`."""
        cached = self.cache.get_audio(text)
        if cached is not None:
            return cached
        audio = self.monitor.wrap_api_call(
            lambda: self._request('GET', '/tts', params={'text': text}).json()['audio'],
            '/tts',
        )
        self.cache.set_audio(text, audio)
        return audio

    # --- other monitored calls ---
    def fetch_vocab(self, q: str = '', page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        try:
            return self.monitor.wrap_api_call(
                lambda: self._request('GET', '/vocab', params={'q': q, 'page': page, 'pageSize': page_size}).json(),
                '/vocab',
            )
        except UnauthorizedError:
            if self.monitor.should_auto_logout():
                self.force_logout('Repeated unauthorized responses while loading vocabulary')
            raise

    def health(self) -> Dict[str, Any]:
        return self.monitor.wrap_api_call(lambda: self._request('GET', '/health').json(), '/health')

    def session_stats(self) -> Dict[str, Any]:
        return self.monitor.wrap_api_call(
            lambda: self._request('GET', '/admin/session-stats').json(),
            '/admin/session-stats',
        )


@dataclass
class ClientContext:
    """One per process. Owns every piece of client-side session state."""

    store: LocalStore
    cache: ResponseCache
    analytics: SessionAnalytics
    monitor: SessionMonitor
    client: VocabClient

    def start(self) -> None:
        self.cache.start_sweeper()
        if self.store.get_token():
            self.analytics.set_login_time()
            self.monitor.start_health_check()

    def shutdown(self) -> None:
        self.monitor.stop_health_check()
        self.cache.stop_sweeper()


def create_context(settings: Optional[Settings] = None, clock=None,
                   http: Optional[requests.Session] = None,
                   store: Optional[LocalStore] = None,
                   dispatch: Optional[Callable] = None,
                   on_logged_out: Optional[Callable[[], None]] = None) -> ClientContext:
    """Build the client context. `on_logged_out` runs after a forced teardown (e.g. to reset the UI)."""
    settings = settings or Settings.from_env()
    http = http or requests.Session()
    store = store or LocalStore(settings.client_state_file)
    cache = ResponseCache(settings.cache_ttl_seconds, settings.cache_sweep_interval_seconds, clock=clock)

    analytics_kwargs = {'dispatch': dispatch} if dispatch is not None else {}
    analytics = SessionAnalytics(store, settings.api_url, clock=clock, http=http,
                                 timeout=settings.http_timeout_seconds, **analytics_kwargs)

    holder: Dict[str, VocabClient] = {}

    def session_expired() -> None:
        holder['client'].clear_local_session()
        if on_logged_out is not None:
            on_logged_out()

    monitor = SessionMonitor(store, analytics, settings.api_url, http=http,
                             interval_seconds=settings.health_check_interval_seconds,
                             max_failures=settings.max_consecutive_failures,
                             on_session_expired=session_expired,
                             timeout=settings.http_timeout_seconds)
    client = VocabClient(settings.api_url, store, cache, analytics, monitor,
                         http=http, timeout=settings.http_timeout_seconds)
    holder['client'] = client
    return ClientContext(store, cache, analytics, monitor, client)
