"""
Chat service data models for conversations, messages and session state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Dict, Optional


class SenderType(str, Enum):
    USER = "user"
    BOT = "bot"


class SendPhase(Enum):
    """Sub-phases of one in-flight send; observers only see send_in_flight"""
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_REPLY = "awaiting_reply"


class SessionEvent(Enum):
    """State changes published by ConversationSession"""
    MESSAGE_APPENDED = "message_appended"
    TRANSCRIPT_CLEARED = "transcript_cleared"
    CONVERSATION_CHANGED = "conversation_changed"
    SEND_STATE_CHANGED = "send_state_changed"
    REPLY_RECEIVED = "reply_received"
    EMOTION_DETECTED = "emotion_detected"
    ESCALATION_REQUESTED = "escalation_requested"
    HISTORY_LOAD_FAILED = "history_load_failed"
    HISTORY_ERROR_CLEARED = "history_error_cleared"


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a backend timestamp. Accepts ISO-8601 (with or without a trailing Z)
    and RFC 1123 dates as produced by Flask's JSON encoder.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {value!r}") from e


@dataclass(frozen=True)
class Message:
    """Individual transcript entry; immutable once created"""
    text: str
    sender_type: SenderType
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> 'Message':
        """Decode one entry of GET /conversations/{id}/messages"""
        if not isinstance(record, dict):
            raise ValueError(f"message record must be an object, got {type(record).__name__}")
        text = record.get("message_text")
        if not isinstance(text, str):
            raise ValueError("message record missing 'message_text'")
        sender = SenderType(record.get("sender_type"))

        raw_time = record.get("timestamp") or record.get("created_at")
        try:
            timestamp = parse_timestamp(raw_time) if raw_time else datetime.now()
        except ValueError:
            timestamp = datetime.now()

        return cls(text=text, sender_type=sender, timestamp=timestamp)


@dataclass(frozen=True)
class Conversation:
    """Read-only projection of a server-side conversation"""
    conversation_id: str
    started_at: datetime
    message_count: int = 0

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> 'Conversation':
        """Decode one entry of GET /conversations"""
        if not isinstance(record, dict):
            raise ValueError(f"conversation record must be an object, got {type(record).__name__}")
        conversation_id = record.get("conversation_id")
        if conversation_id in (None, ""):
            raise ValueError("conversation record missing 'conversation_id'")

        count = record.get("message_count") or 0
        return cls(
            conversation_id=str(conversation_id),
            started_at=parse_timestamp(record.get("started_at")),
            message_count=int(count)
        )


@dataclass(frozen=True)
class EmotionAnnotation:
    """Label/confidence pair attached to a bot reply"""
    label: str
    confidence: float = 0.0

    def __post_init__(self):
        # Out-of-range confidences from the backend are clamped, not rejected
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))


@dataclass
class ActiveSessionState:
    """Client focus and the global send gate"""
    current_conversation_id: Optional[str] = None
    phase: SendPhase = SendPhase.IDLE

    @property
    def send_in_flight(self) -> bool:
        return self.phase is not SendPhase.IDLE


@dataclass
class PendingDeleteSelection:
    """Conversation the user asked to delete, awaiting confirmation"""
    target_conversation_id: Optional[str] = None
