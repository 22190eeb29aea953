"""
UI service - Streamlit rendering adapter and pure transcript formatting.
"""

from .transcript import (
    RenderedMessage,
    ConversationLabel,
    render_transcript,
    format_emotion,
    format_conversation_label
)

# Lazy import so the pure renderer can be used without loading Streamlit
def get_chat_interface():
    from .chat_interface import get_chat_interface as _get_chat_interface
    return _get_chat_interface()

__all__ = [
    'RenderedMessage',
    'ConversationLabel',
    'render_transcript',
    'format_emotion',
    'format_conversation_label',
    'get_chat_interface'
]
