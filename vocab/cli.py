"""
Session diagnostics from the command line.

    python -m vocab.cli debug            # local session info, health and logout history
    python -m vocab.cli clear-history    # reset the local logout history
    python -m vocab.cli cleanup-sessions # delete expired server sessions
    python -m vocab.cli session-stats    # server session/logout statistics
"""

import argparse
import json
import sys
from typing import List, Optional

from .analytics import SessionAnalytics
from .config import Settings
from .db import Database
from .local_store import LocalStore
from .monitoring import configure_logging
from .session_manager import SessionManager
from .session_monitor import SessionMonitor


def format_duration(ms: float) -> str:
    minutes = int(ms // 60000)
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"


def build_debug_report(analytics: SessionAnalytics, monitor: SessionMonitor) -> str:
    info = monitor.get_session_info()
    health = analytics.get_session_health()
    lines = [
        "Session",
        f"  logged in:        {'yes' if info.has_token else 'no'}",
        f"  username:         {info.username or '-'}",
        f"  admin:            {'yes' if info.is_admin else 'no'}",
        f"  failures:         {info.consecutive_failures}",
        f"  health check:     {'active' if info.health_check_active else 'inactive'}",
        "Health",
        f"  total logouts:    {health.total_logouts}",
        f"  unexpected:       {health.unexpected_logouts}",
        f"  avg session:      {format_duration(health.average_session_duration)}",
    ]
    for pattern in health.recent_patterns:
        lines.append(f"  ! {pattern}")
    if health.common_reasons:
        lines.append("Common reasons")
        for item in health.common_reasons[:5]:
            lines.append(f"  {item['count']:>3}  {item['reason']}")
    history = analytics.get_logout_history()
    lines.append(f"Logout history ({len(history)})")
    for event in history:
        status = f" [{event.http_status}]" if event.http_status else ""
        endpoint = f" {event.api_endpoint}" if event.api_endpoint else ""
        lines.append(
            f"  {event.timestamp}  {event.type:<13} {format_duration(event.session_duration_ms):>7}  "
            f"{event.reason}{status}{endpoint}"
        )
    return "\n".join(lines)


def _server_manager(settings: Settings) -> SessionManager:
    manager = SessionManager(Database(settings.db_path), timeout_hours=settings.session_timeout_hours)
    manager.initialize_tables()
    return manager


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog='vocab', description="Vocab session diagnostics")
    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('debug', help="Show local session info, health and logout history")
    sub.add_parser('clear-history', help="Clear the local logout history")
    sub.add_parser('cleanup-sessions', help="Delete expired sessions from the server store")
    sub.add_parser('session-stats', help="Print server session statistics as JSON")
    args = parser.parse_args(argv)

    configure_logging()
    settings = Settings.from_env()

    if args.command in ('debug', 'clear-history'):
        store = LocalStore(settings.client_state_file)
        analytics = SessionAnalytics(store, settings.api_url)
        if args.command == 'clear-history':
            analytics.clear_history()
            print("Logout history cleared.")
            return 0
        monitor = SessionMonitor(store, analytics, settings.api_url)
        print(build_debug_report(analytics, monitor))
        return 0

    manager = _server_manager(settings)
    if args.command == 'cleanup-sessions':
        print(f"Removed {manager.cleanup_expired_sessions()} expired sessions.")
        return 0
    print(json.dumps(manager.get_session_stats(), indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
