import os
import json
import logging
import threading
from typing import List, Optional

import bcrypt

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _admin_usernames() -> set:
    raw = os.getenv('ADMIN_USERNAMES', '')
    return {name.strip().lower() for name in raw.split(',') if name.strip()}


class UserStore:
    """Registered users in a JSON file. Passwords are stored as bcrypt hashes."""

    def __init__(self, users_file: str):
        self.users_file = users_file
        self._lock = threading.Lock()

    # Helper to load all users
    def load_all_users(self) -> List[dict]:
        if not os.path.exists(self.users_file):
            return []
        with open(self.users_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
            return data if isinstance(data, list) else []

    # Helper to save all users
    def save_all_users(self, users: List[dict]) -> None:
        with open(self.users_file, 'w', encoding='utf-8') as f:
            json.dump(users, f, indent=2)

    def register_user(self, username: str, password: str) -> Optional[str]:
        """Register a new user. Returns an error message, or None on success."""
        username = (username or '').strip()
        if not username:
            return 'Username is required.'
        if len(password or '') < MIN_PASSWORD_LENGTH:
            return f'Password must be at least {MIN_PASSWORD_LENGTH} characters.'
        with self._lock:
            users = self.load_all_users()
            if any(u['username'].lower() == username.lower() for u in users):
                return 'Username already taken.'
            password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()
            users.append({
                'id': max((u['id'] for u in users), default=0) + 1,
                'username': username,
                'password_hash': password_hash,
                'is_admin': username.lower() in _admin_usernames(),
            })
            self.save_all_users(users)
        logger.info(f"Registered user {username}")
        return None

    def login_user(self, username: str, password: str) -> Optional[dict]:
        username = (username or '').strip().lower()
        for user in self.load_all_users():
            if user['username'].lower() == username:
                if bcrypt.checkpw((password or '').encode(), user['password_hash'].encode()):
                    return user
                return None
        return None

    def get_user(self, user_id: int) -> Optional[dict]:
        return next((u for u in self.load_all_users() if u['id'] == user_id), None)

    def change_password(self, user_id: int, old_password: str, new_password: str) -> Optional[str]:
        """Returns an error message, or None on success."""
        if len(new_password or '') < MIN_PASSWORD_LENGTH:
            return f'Password must be at least {MIN_PASSWORD_LENGTH} characters.'
        with self._lock:
            users = self.load_all_users()
            user = next((u for u in users if u['id'] == user_id), None)
            if not user or not bcrypt.checkpw((old_password or '').encode(), user['password_hash'].encode()):
                return 'Current password is incorrect.'
            user['password_hash'] = bcrypt.hashpw(new_password.encode(), bcrypt.gensalt()).decode()
            self.save_all_users(users)
        return None
