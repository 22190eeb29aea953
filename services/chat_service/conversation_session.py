"""
Conversation session - owns the active conversation, the transcript and the
global send gate, and orchestrates message send/receive.

State changes are published to subscribers (the Streamlit adapter and the
conversation list), so the state machine itself never touches the UI.
"""

from typing import Any, Callable, List, Optional, Tuple

from infrastructure.config.settings import ChatConfig
from infrastructure.errors import NotFoundError, TransportError, ValidationError
from infrastructure.external.backend_client import BackendClient, ChatReply
from infrastructure.monitoring.logging_service import (
    get_logger,
    get_error_tracker,
    log_conversation_event,
    log_user_interaction
)
from infrastructure.resilience.retry_service import RetryService, get_retry_service
from services.auth_service.models import SessionIdentity
from services.chat_service.emotion_display import EmotionDisplay
from services.chat_service.models import (
    ActiveSessionState,
    EmotionAnnotation,
    Message,
    SendPhase,
    SenderType,
    SessionEvent
)

SessionListener = Callable[[SessionEvent, Any], None]
IdentityProvider = Callable[[], Optional[SessionIdentity]]

HISTORY_NOT_FOUND_MESSAGE = "This conversation no longer exists."
HISTORY_FAILED_MESSAGE = "Could not load this conversation. Please try again."


class ConversationSession:
    """
    Client-side conversation state machine.

    Phases: IDLE -> SENDING -> AWAITING_REPLY -> IDLE. SENDING and
    AWAITING_REPLY together form the in-flight window; at most one send can
    be in flight for the whole client.
    """

    def __init__(
        self,
        backend: BackendClient,
        identity_provider: IdentityProvider,
        config: Optional[ChatConfig] = None,
        emotion_display: Optional[EmotionDisplay] = None,
        retry_service: Optional[RetryService] = None,
        history_retries: int = 2
    ):
        self.logger = get_logger(__name__)
        self.backend = backend
        self.identity_provider = identity_provider
        self.config = config or ChatConfig()
        self.emotion_display = emotion_display or EmotionDisplay(self.config.emotion_dwell_seconds)
        self.retry_service = retry_service or get_retry_service()
        self.history_retries = history_retries

        self.state = ActiveSessionState()
        self.history_error: Optional[str] = None
        self.viewing_history = False
        self._transcript: List[Message] = []
        self._listeners: List[SessionListener] = []

    # ==================== observation ====================

    @property
    def current_conversation_id(self) -> Optional[str]:
        return self.state.current_conversation_id

    @property
    def send_in_flight(self) -> bool:
        return self.state.send_in_flight

    @property
    def phase(self) -> SendPhase:
        return self.state.phase

    @property
    def transcript(self) -> Tuple[Message, ...]:
        return tuple(self._transcript)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: SessionEvent, payload: Any = None):
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                # A broken subscriber must not leave the send gate locked
                get_error_tracker().track_error(e, f"session_listener:{event.value}")

    # ==================== transitions ====================

    def _set_phase(self, phase: SendPhase):
        self.state.phase = phase
        self._publish(SessionEvent.SEND_STATE_CHANGED, phase)

    def _append(self, message: Message):
        self._transcript.append(message)
        self._publish(SessionEvent.MESSAGE_APPENDED, message)

    def _clear_transcript(self):
        self._transcript = []
        self.history_error = None
        self._publish(SessionEvent.TRANSCRIPT_CLEARED)

    def _set_conversation(self, conversation_id: Optional[str]):
        if conversation_id == self.state.current_conversation_id:
            return
        self.state.current_conversation_id = conversation_id
        self._publish(SessionEvent.CONVERSATION_CHANGED, conversation_id)

    def prepare_message(self, raw_text: str) -> Optional[str]:
        """
        Trim the input. Returns None when there is nothing to send and raises
        ValidationError when the text exceeds the character limit.
        """
        text = (raw_text or "").strip()
        if not text:
            return None
        if len(text) > self.config.max_message_length:
            raise ValidationError(
                f"Message is too long ({len(text)}/{self.config.max_message_length} characters)"
            )
        return text

    def submit(self, raw_text: str) -> bool:
        """
        Send one user message.

        Returns True when a request was issued. A call while another send is
        in flight, or with blank text, is a no-op returning False.
        """
        if self.send_in_flight:
            self.logger.debug("Ignoring submit while a send is in flight")
            return False

        text = self.prepare_message(raw_text)
        if text is None:
            return False

        identity = self.identity_provider()
        if identity is None:
            raise ValidationError("You must be logged in to send messages")

        # A new exchange replaces any stale load failure
        self._clear_history_error()
        self._set_phase(SendPhase.SENDING)
        try:
            # Optimistic: shown before the server answers and never retracted
            self._append(Message(text=text, sender_type=SenderType.USER))
            log_user_interaction(
                self.logger,
                "message_submitted",
                message_length=len(text),
                conversation_id=self.current_conversation_id
            )

            self._set_phase(SendPhase.AWAITING_REPLY)
            try:
                reply = self.backend.send_message(text, identity.user_id, self.current_conversation_id)
            except TransportError as e:
                self.logger.warning(f"Chat request failed: {e.message}")
                self._append(Message(text=self.config.fallback_message, sender_type=SenderType.BOT))
                return True
            except Exception as e:
                get_error_tracker().track_error(e, "chat_submit")
                self._append(Message(text=self.config.fallback_message, sender_type=SenderType.BOT))
                return True

            self._apply_reply(reply)
            return True
        finally:
            self._set_phase(SendPhase.IDLE)

    def _apply_reply(self, reply: ChatReply):
        if reply.conversation_id != self.current_conversation_id:
            log_conversation_event(self.logger, "adopted", reply.conversation_id)
        self._set_conversation(reply.conversation_id)

        self._append(Message(text=reply.reply, sender_type=SenderType.BOT))

        if reply.emotion:
            annotation = EmotionAnnotation(label=reply.emotion, confidence=reply.confidence or 0.0)
            self.emotion_display.show(annotation)
            self._publish(SessionEvent.EMOTION_DETECTED, annotation)

        if reply.needs_escalation and self.config.escalation_alerts:
            self.logger.warning("Reply flagged for escalation", extra={"conversation_id": reply.conversation_id})
            self._publish(SessionEvent.ESCALATION_REQUESTED, reply)

        self._publish(SessionEvent.REPLY_RECEIVED, reply)

    def start_new(self):
        """
        Drop client focus on the current conversation. Server rows are kept;
        the optional end notice is fire-and-forget.
        """
        previous = self.current_conversation_id
        if previous and self.config.notify_end_conversation:
            try:
                self.backend.end_conversation(previous)
            except TransportError as e:
                self.logger.warning(f"End-conversation notice failed for {previous}: {e.message}")

        self.viewing_history = False
        self._set_conversation(None)
        self._clear_transcript()
        self.emotion_display.cancel()
        log_conversation_event(self.logger, "new_chat", previous)

    def reset(self):
        """Return to the empty new-chat state without contacting the backend"""
        self.viewing_history = False
        self._set_conversation(None)
        self._clear_transcript()
        self.emotion_display.cancel()

    def load_existing(self, conversation_id: str) -> bool:
        """
        Focus a saved conversation and replay its history in server order.
        On failure the transcript stays empty and history_error is set.
        """
        self.viewing_history = True
        self._set_conversation(conversation_id)
        self._clear_transcript()
        self.emotion_display.cancel()

        try:
            records = self.retry_service.retry_with_backoff(
                lambda: self.backend.get_messages(conversation_id),
                max_retries=self.history_retries
            )
            messages = [Message.from_api(record) for record in records]
        except NotFoundError:
            self.logger.warning(f"Conversation {conversation_id} no longer exists")
            self._fail_history(HISTORY_NOT_FOUND_MESSAGE)
            return False
        except TransportError as e:
            self.logger.warning(f"Failed to load messages for {conversation_id}: {e.message}")
            self._fail_history(HISTORY_FAILED_MESSAGE)
            return False
        except ValueError as e:
            self.logger.warning(f"Malformed message history for {conversation_id}: {e}")
            self._fail_history(HISTORY_FAILED_MESSAGE)
            return False

        for message in messages:
            self._append(message)

        log_conversation_event(self.logger, "loaded", conversation_id, message_count=len(messages))
        return True

    def _fail_history(self, message: str):
        self.history_error = message
        self._publish(SessionEvent.HISTORY_LOAD_FAILED, message)

    def _clear_history_error(self):
        if self.history_error is None:
            return
        self.history_error = None
        self._publish(SessionEvent.HISTORY_ERROR_CLEARED, None)
