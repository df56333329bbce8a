"""
Server-side session store with sliding-window expiration.

A session is valid while `expires_at > now`. Every successful validation moves
`expires_at` to `now + timeout`, so an active user is only ever logged out for
inactivity. Session table writes propagate storage errors; the logout audit
trail is best-effort.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .clock import SystemClock, iso_utc
from .db import Database

logger = logging.getLogger(__name__)

SESSION_TIMEOUT_HOURS = 24
RECENT_LOGOUTS_LIMIT = 10
LOGOUT_STATS_DAYS = 7

SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL,
    is_admin INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    last_activity TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    user_agent TEXT,
    ip_address TEXT
);
CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_sessions_expires_at ON sessions(expires_at);

CREATE TABLE IF NOT EXISTS logout_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    event_type TEXT NOT NULL,
    reason TEXT NOT NULL,
    session_duration_ms INTEGER,
    error_details TEXT,
    api_endpoint TEXT,
    http_status INTEGER,
    user_agent TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_logout_events_user_id ON logout_events(user_id);
CREATE INDEX IF NOT EXISTS idx_logout_events_created_at ON logout_events(created_at);
"""


@dataclass
class SessionData:
    token: str
    user_id: int
    is_admin: bool
    created_at: str
    last_activity: str
    expires_at: str


class SessionManager:
    def __init__(self, db: Database, clock=None, timeout_hours: int = SESSION_TIMEOUT_HOURS):
        self.db = db
        self.clock = clock or SystemClock()
        self.timeout_hours = timeout_hours

    def initialize_tables(self) -> None:
        self.db.executescript(SCHEMA)

    def _now(self) -> float:
        return self.clock.now()

    def _expiry_from(self, now: float) -> str:
        return iso_utc(now + self.timeout_hours * 3600)

    def create_session(self, token: str, user_id: int, is_admin: bool,
                       user_agent: Optional[str] = None, ip_address: Optional[str] = None) -> None:
        now = self._now()
        stamp = iso_utc(now)
        self.db.execute(
            """
            INSERT INTO sessions (token, user_id, is_admin, created_at, last_activity, expires_at, user_agent, ip_address)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (token, user_id, 1 if is_admin else 0, stamp, stamp, self._expiry_from(now),
             user_agent or None, ip_address or None)
        )

    def validate_and_touch(self, token: str) -> Optional[SessionData]:
        """
        Look up a live session and slide its window forward.

        Phase one selects the row only if it has not expired; phase two sets
        `last_activity` and `expires_at` in a single UPDATE. Expired or unknown
        tokens return None and cause no writes.
        """
        now = self._now()
        stamp = iso_utc(now)
        row = self.db.fetchone(
            """
            SELECT token, user_id, is_admin, created_at, last_activity, expires_at
            FROM sessions
            WHERE token = ? AND expires_at > ?
            """,
            (token, stamp)
        )
        if not row:
            return None

        expires_at = self._expiry_from(now)
        self.db.execute(
            "UPDATE sessions SET last_activity = ?, expires_at = ? WHERE token = ? AND expires_at > ?",
            (stamp, expires_at, token, stamp)
        )
        return SessionData(
            token=row['token'],
            user_id=row['user_id'],
            is_admin=bool(row['is_admin']),
            created_at=row['created_at'],
            last_activity=stamp,
            expires_at=expires_at,
        )

    get_session = validate_and_touch

    def update_session_activity(self, token: str) -> None:
        self.db.execute(
            "UPDATE sessions SET last_activity = ? WHERE token = ?",
            (iso_utc(self._now()), token)
        )

    def extend_session(self, token: str) -> bool:
        """Push expiry to now + timeout. Returns False for expired or unknown tokens."""
        now = self._now()
        stamp = iso_utc(now)
        changed = self.db.execute(
            """
            UPDATE sessions
            SET expires_at = ?, last_activity = ?
            WHERE token = ? AND expires_at > ?
            """,
            (self._expiry_from(now), stamp, token, stamp)
        )
        return changed > 0

    def delete_session(self, token: str) -> None:
        self.db.execute("DELETE FROM sessions WHERE token = ?", (token,))

    def delete_all_user_sessions(self, user_id: int) -> None:
        self.db.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))

    def cleanup_expired_sessions(self) -> int:
        removed = self.db.execute(
            "DELETE FROM sessions WHERE expires_at <= ?",
            (iso_utc(self._now()),)
        )
        if removed:
            logger.info(f"Removed {removed} expired sessions")
        return removed

    def get_user_session_count(self, user_id: int) -> int:
        row = self.db.fetchone(
            "SELECT COUNT(*) AS count FROM sessions WHERE user_id = ? AND expires_at > ?",
            (user_id, iso_utc(self._now()))
        )
        return row['count'] if row else 0

    def record_logout_event(self, user_id: Optional[int], event_type: str, reason: str,
                            session_duration_ms: Optional[int] = None,
                            error_details: Optional[str] = None,
                            api_endpoint: Optional[str] = None,
                            http_status: Optional[int] = None,
                            user_agent: Optional[str] = None) -> None:
        """Append to the logout audit trail. Storage failures are logged, never raised."""
        try:
            self.db.execute(
                """
                INSERT INTO logout_events
                (user_id, event_type, reason, session_duration_ms, error_details, api_endpoint, http_status, user_agent, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, event_type, reason, session_duration_ms, error_details or None,
                 api_endpoint or None, http_status, user_agent or None, iso_utc(self._now()))
            )
        except sqlite3.Error as e:
            logger.error(f"Failed to record logout event: {e}")

    def get_session_stats(self) -> Dict[str, Any]:
        now = self._now()
        stamp = iso_utc(now)
        week_ago = iso_utc(now - LOGOUT_STATS_DAYS * 86400)
        active = self.db.fetchone("SELECT COUNT(*) AS count FROM sessions WHERE expires_at > ?", (stamp,))
        expired = self.db.fetchone("SELECT COUNT(*) AS count FROM sessions WHERE expires_at <= ?", (stamp,))
        logouts = self.db.fetchone("SELECT COUNT(*) AS count FROM logout_events WHERE created_at > ?", (week_ago,))
        recent = self.db.fetchall(
            """
            SELECT event_type, reason, created_at, user_id
            FROM logout_events
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            (RECENT_LOGOUTS_LIMIT,)
        )
        return {
            'active_sessions': active['count'] if active else 0,
            'expired_sessions': expired['count'] if expired else 0,
            'total_logout_events': logouts['count'] if logouts else 0,
            'recent_logouts': recent,
        }
