"""
Identity and screen-state data models for the authentication service.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Screen(Enum):
    """Which top-level screen the client shows"""
    LOGIN = "login"
    CHAT = "chat"


@dataclass(frozen=True)
class SessionIdentity:
    """Authenticated user; both fields are always non-empty"""
    user_id: str
    username: str

    def __post_init__(self):
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            raise ValueError("user_id must be a non-empty string")
        if not isinstance(self.username, str) or not self.username.strip():
            raise ValueError("username must be a non-empty string")

    def to_storage(self) -> Dict[str, str]:
        """Shape written to durable storage"""
        return {"userId": self.user_id, "username": self.username}

    @classmethod
    def from_storage(cls, data: Any) -> Optional['SessionIdentity']:
        """Decode a stored record; anything not well-formed yields None"""
        if not isinstance(data, dict):
            return None
        user_id = data.get("userId")
        username = data.get("username")
        if isinstance(user_id, int) and not isinstance(user_id, bool):
            user_id = str(user_id)
        try:
            return cls(user_id=user_id, username=username)
        except ValueError:
            return None
