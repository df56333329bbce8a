import os
import json
import logging
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = 'sessionToken'
USERNAME_KEY = 'username'
ADMIN_KEY = 'isAdmin'
ANALYTICS_KEY = 'session_analytics'


class LocalStore:
    """
    Client-side persisted key/value state (auth token, username, admin flag,
    logout history). Backed by a JSON file, or kept in memory when no path is given.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._memory: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if self.path is None:
            return dict(self._memory)
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read client state from {self.path}: {e}")
            return {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        if self.path is None:
            self._memory = dict(data)
            return
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove(self, *keys: str) -> None:
        with self._lock:
            data = self._read_all()
            for key in keys:
                data.pop(key, None)
            self._write_all(data)

    # --- auth state ---
    def get_token(self) -> Optional[str]:
        return self.get(TOKEN_KEY) or None

    def save_auth(self, token: str, username: str, is_admin: bool) -> None:
        with self._lock:
            data = self._read_all()
            data[TOKEN_KEY] = token
            data[USERNAME_KEY] = username
            data[ADMIN_KEY] = 'true' if is_admin else 'false'
            self._write_all(data)

    def clear_auth(self) -> None:
        self.remove(TOKEN_KEY, USERNAME_KEY, ADMIN_KEY)
