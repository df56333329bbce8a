"""
HTTP surface that the session layer depends on.

Run with: uvicorn vocab.server:create_default_app --factory
"""

import logging
import secrets
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .config import Settings
from .db import Database
from .monitoring import SessionMetrics, configure_logging
from .schemas import Credentials, LoginResponse, LogoutEventIn, PasswordChange
from .session_manager import SessionData, SessionManager
from .session_worker import start_session_cleanup_worker
from .user_auth import UserStore

logger = logging.getLogger(__name__)

TextProvider = Callable[[str, str, int], str]
SpeechProvider = Callable[[str], str]


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def create_app(manager: SessionManager, users: UserStore,
               text_provider: Optional[TextProvider] = None,
               speech_provider: Optional[SpeechProvider] = None,
               metrics: Optional[SessionMetrics] = None) -> FastAPI:
    app = FastAPI(title="Vocab Backend")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )
    app.state.session_manager = manager
    app.state.users = users

    def current_session(request: Request) -> SessionData:
        token = bearer_token(request)
        session = manager.get_session(token) if token else None
        if session is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return session

    def optional_session(request: Request) -> Optional[SessionData]:
        token = bearer_token(request)
        return manager.get_session(token) if token else None

    def admin_session(session: SessionData = Depends(current_session)) -> SessionData:
        if not session.is_admin:
            raise HTTPException(status_code=403, detail="Forbidden")
        return session

    @app.post("/register", status_code=201)
    def register(creds: Credentials):
        error = users.register_user(creds.username, creds.password)
        if error:
            raise HTTPException(status_code=400, detail=error)
        return {"ok": True}

    @app.post("/login", response_model=LoginResponse)
    def login(creds: Credentials, request: Request):
        user = users.login_user(creds.username, creds.password)
        if not user:
            raise HTTPException(status_code=401, detail="Invalid username or password")
        token = secrets.token_urlsafe(32)
        manager.create_session(
            token, user['id'], bool(user.get('is_admin')),
            user_agent=request.headers.get('User-Agent'),
            ip_address=request.headers.get('X-Forwarded-For') or (request.client.host if request.client else None),
        )
        logger.info(f"User {user['username']} logged in")
        return LoginResponse(token=token, is_admin=bool(user.get('is_admin')))

    @app.post("/logout")
    def logout(request: Request):
        token = bearer_token(request)
        if token:
            manager.delete_session(token)
        return {"ok": True}

    @app.post("/password")
    def change_password(change: PasswordChange, session: SessionData = Depends(current_session)):
        error = users.change_password(session.user_id, change.old_password, change.new_password)
        if error:
            raise HTTPException(status_code=400, detail=error)
        # Log out everywhere, including this session
        manager.delete_all_user_sessions(session.user_id)
        return {"ok": True}

    @app.get("/health")
    def health(session: SessionData = Depends(current_session)):
        return {"ok": True, "expires_at": session.expires_at}

    @app.post("/analytics/logout")
    def analytics_logout(event: LogoutEventIn, request: Request,
                         session: Optional[SessionData] = Depends(optional_session)):
        manager.record_logout_event(
            session.user_id if session else None,
            event.type,
            event.reason,
            session_duration_ms=event.session_duration_ms,
            error_details=event.error_details,
            api_endpoint=event.api_endpoint,
            http_status=event.http_status,
            user_agent=event.user_agent or request.headers.get('User-Agent'),
        )
        if metrics is not None:
            metrics.track_logout(event.type)
            if event.type == 'auto':
                metrics.track_forced_logout(event.reason)
        return {"ok": True}

    @app.get("/admin/session-stats")
    def session_stats(session: SessionData = Depends(admin_session)):
        return manager.get_session_stats()

    @app.get("/openai", response_class=PlainTextResponse)
    def openai(word: str, action: str, session: SessionData = Depends(current_session)):
        if text_provider is None:
            raise HTTPException(status_code=501, detail="text generation not configured")
        if not word.strip():
            raise HTTPException(status_code=400, detail="word is required")
        return text_provider(word.strip(), action, session.user_id)

    @app.get("/tts")
    def tts(text: str, session: SessionData = Depends(current_session)):
        if speech_provider is None:
            raise HTTPException(status_code=501, detail="speech synthesis not configured")
        if not text.strip():
            raise HTTPException(status_code=400, detail="text is required")
        return {"audio": speech_provider(text.strip())}

    return app


def create_default_app() -> FastAPI:
    """Build the app from environment settings and start the expired-session sweeper."""
    configure_logging()
    settings = Settings.from_env()
    manager = SessionManager(Database(settings.db_path), timeout_hours=settings.session_timeout_hours)
    manager.initialize_tables()
    metrics = SessionMetrics(settings.environment, enabled=settings.enable_cloudwatch)
    if settings.enable_session_cleanup:
        start_session_cleanup_worker(manager, settings.session_cleanup_interval_secs, metrics=metrics)
    return create_app(manager, UserStore(settings.users_file), metrics=metrics)
