"""
Persisted session store - durable identity and theme preference.
"""

import json
import sqlite3
from typing import Optional

from infrastructure.config.settings import THEMES
from infrastructure.errors import ValidationError
from infrastructure.monitoring.logging_service import get_logger
from infrastructure.storage.key_value_store import KeyValueStorage
from services.auth_service.models import SessionIdentity

IDENTITY_KEY = "sessionIdentity"
THEME_KEY = "uiTheme"


class PersistedSessionStore:
    """
    Wraps a key-value storage surface holding the authenticated identity
    and the UI theme. Reads never raise: a missing, corrupt or unreadable
    record degrades to "unauthenticated" / the default theme.
    """

    def __init__(self, storage: KeyValueStorage, default_theme: str = "light"):
        self.logger = get_logger(__name__)
        self.storage = storage
        self.default_theme = default_theme if default_theme in THEMES else "light"

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.storage.get(key)
        except sqlite3.Error as e:
            self.logger.warning(f"Could not read '{key}' from client storage: {e}")
            return None

    def load_identity(self) -> Optional[SessionIdentity]:
        """Return the stored identity, or None when absent or not well-formed"""
        raw = self._read(IDENTITY_KEY)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except ValueError:
            data = None

        identity = SessionIdentity.from_storage(data)
        if identity is None:
            self.logger.warning("Discarding malformed stored session identity")
            self.clear_identity()
        return identity

    def save_identity(self, identity: SessionIdentity):
        try:
            self.storage.set(IDENTITY_KEY, json.dumps(identity.to_storage()))
        except sqlite3.Error as e:
            # The in-memory session stays valid; it just won't survive a reload
            self.logger.error(f"Could not persist session identity: {e}")

    def clear_identity(self):
        try:
            self.storage.delete(IDENTITY_KEY)
        except sqlite3.Error as e:
            self.logger.error(f"Could not clear stored session identity: {e}")

    def get_theme(self) -> str:
        theme = self._read(THEME_KEY)
        return theme if theme in THEMES else self.default_theme

    def set_theme(self, theme: str):
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme '{theme}'")
        try:
            self.storage.set(THEME_KEY, theme)
        except sqlite3.Error as e:
            self.logger.error(f"Could not persist theme preference: {e}")

    def toggle_theme(self) -> str:
        theme = "dark" if self.get_theme() == "light" else "light"
        self.set_theme(theme)
        return theme
