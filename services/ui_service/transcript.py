"""
Transcript renderer - pure formatting of session state into display values.
Nothing here touches Streamlit, so it is testable on its own.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Tuple

from services.chat_service.models import Conversation, EmotionAnnotation, Message, SenderType

EMOTION_ICONS = {
    "Happiness": "😊",
    "Sadness": "😢",
    "Anger": "😠",
    "Anxiety": "😰",
    "Love": "❤️",
    "Loneliness": "😔",
    "Confusion": "😕",
    "Hope": "🌟",
    "Overwhelm": "😫",
    "Crisis": "🚨",
    "Neutral": "😐",
}
DEFAULT_EMOTION_ICON = "💭"

AVATARS = {
    SenderType.USER: "👤",
    SenderType.BOT: "💙",
}

NEW_CHAT_SUBTITLE = "Start a new conversation"
HISTORY_SUBTITLE = "Viewing past conversation"
EMPTY_LIST_PLACEHOLDER = "No conversations yet"


@dataclass(frozen=True)
class RenderedMessage:
    sender_type: SenderType
    avatar: str
    paragraphs: Tuple[str, ...]
    time_label: str

    @property
    def role(self) -> str:
        """Streamlit chat role"""
        return "user" if self.sender_type is SenderType.USER else "assistant"


@dataclass(frozen=True)
class ConversationLabel:
    conversation_id: str
    title: str
    detail: str


def _twelve_hour(moment: datetime) -> Tuple[int, str]:
    return moment.hour % 12 or 12, "AM" if moment.hour < 12 else "PM"


def _local(moment: datetime) -> datetime:
    # Aware server timestamps are shown in the viewer's local time
    return moment.astimezone() if moment.tzinfo is not None else moment


def format_message_time(moment: datetime) -> str:
    """e.g. '3:07 PM'"""
    moment = _local(moment)
    hour, suffix = _twelve_hour(moment)
    return f"{hour}:{moment.minute:02d} {suffix}"


def split_paragraphs(text: str) -> Tuple[str, ...]:
    """One paragraph per non-blank line, each trimmed"""
    return tuple(line.strip() for line in text.split("\n") if line.strip())


def render_message(message: Message) -> RenderedMessage:
    return RenderedMessage(
        sender_type=message.sender_type,
        avatar=AVATARS[message.sender_type],
        paragraphs=split_paragraphs(message.text),
        time_label=format_message_time(message.timestamp)
    )


def render_transcript(messages: Iterable[Message]) -> List[RenderedMessage]:
    """Same order as the input; no re-sorting"""
    return [render_message(message) for message in messages]


def format_emotion(annotation: EmotionAnnotation) -> str:
    """e.g. '😰 Anxiety (81%)'"""
    icon = EMOTION_ICONS.get(annotation.label, DEFAULT_EMOTION_ICON)
    percent = math.floor(annotation.confidence * 100 + 0.5)
    return f"{icon} {annotation.label} ({percent}%)"


def format_char_limit(limit: int) -> str:
    """Hint shown under the chat input, e.g. 'Up to 1,000 characters per message'"""
    return f"Up to {limit:,} characters per message"


def format_conversation_label(conversation: Conversation) -> ConversationLabel:
    """Title like 'Mar 5 at 09:30 AM', detail like '12 messages'"""
    started = _local(conversation.started_at)
    hour, suffix = _twelve_hour(started)
    title = f"{started.strftime('%b')} {started.day} at {hour:02d}:{started.minute:02d} {suffix}"
    return ConversationLabel(
        conversation_id=conversation.conversation_id,
        title=title,
        detail=f"{conversation.message_count} messages"
    )


def welcome_text(template: str, username: str) -> str:
    return template.format(username=username)
