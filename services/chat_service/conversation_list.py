"""
Conversation list synchronizer - mirrors the user's saved conversations from
the backend and handles select-to-resume and deletion.
"""

from typing import Callable, List, Optional

from infrastructure.config.settings import ConversationConfig
from infrastructure.errors import NotFoundError, TransportError
from infrastructure.external.backend_client import BackendClient
from infrastructure.monitoring.logging_service import get_logger, log_conversation_event
from infrastructure.resilience.retry_service import RetryService, get_retry_service
from services.auth_service.models import SessionIdentity
from services.chat_service.conversation_session import ConversationSession
from services.chat_service.models import Conversation, PendingDeleteSelection
from services.confirmation import ConfirmCallback, never_confirm

DELETE_PROMPT = "Delete this conversation? This cannot be undone."


class ConversationListSynchronizer:
    """
    Holds a read-only projection of the server's conversation list.
    Every refresh replaces the list wholesale with the latest response.
    """

    def __init__(
        self,
        backend: BackendClient,
        session: ConversationSession,
        identity_provider: Callable[[], Optional[SessionIdentity]],
        config: Optional[ConversationConfig] = None,
        confirm: ConfirmCallback = never_confirm,
        retry_service: Optional[RetryService] = None
    ):
        self.logger = get_logger(__name__)
        self.backend = backend
        self.session = session
        self.identity_provider = identity_provider
        self.config = config or ConversationConfig()
        self.confirm = confirm
        self.retry_service = retry_service or get_retry_service()

        self.conversations: List[Conversation] = []
        self.pending_delete = PendingDeleteSelection()
        self.last_error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.conversations

    def clear(self):
        """Forget the cached list (used on logout)"""
        self.conversations = []
        self.pending_delete = PendingDeleteSelection()
        self.last_error = None

    def refresh(self, user_id: Optional[str] = None) -> List[Conversation]:
        """
        Fetch the full list for the user and replace the cached one.
        Failures are logged only; the previous list stays displayed.
        """
        if user_id is None:
            identity = self.identity_provider()
            if identity is None:
                return list(self.conversations)
            user_id = identity.user_id

        try:
            records = self.retry_service.retry_with_backoff(
                lambda: self.backend.list_conversations(user_id),
                max_retries=self.config.list_retries,
                base_delay=self.config.retry_base_delay
            )
        except TransportError as e:
            self.logger.warning(f"Failed to load conversations: {e.message}")
            return list(self.conversations)

        conversations = []
        for record in records:
            try:
                conversations.append(Conversation.from_api(record))
            except (TypeError, ValueError) as e:
                self.logger.warning(f"Skipping malformed conversation record: {e}")

        self.conversations = conversations
        self.logger.debug(f"Conversation list refreshed: {len(conversations)} entries")
        return list(self.conversations)

    def select_conversation(self, conversation_id: str) -> bool:
        return self.session.load_existing(conversation_id)

    # ==================== deletion ====================

    def request_delete(self, conversation_id: str):
        self.pending_delete.target_conversation_id = conversation_id
        self.last_error = None

    def cancel_delete(self):
        self.pending_delete.target_conversation_id = None

    def confirm_delete(self) -> bool:
        """
        Delete the pending target. On success the session is reset if the
        target was active, and the list is refreshed either way. On failure
        nothing client-side changes and last_error is set.
        """
        target = self.pending_delete.target_conversation_id
        if target is None:
            return False
        self.pending_delete.target_conversation_id = None

        try:
            self.backend.delete_conversation(target)
        except NotFoundError:
            # Already gone on the server; converge on that
            self.logger.info(f"Conversation {target} was already deleted")
        except TransportError as e:
            self.logger.warning(f"Failed to delete conversation {target}: {e.message}")
            self.last_error = f"Failed to delete conversation: {e.message}"
            return False

        log_conversation_event(self.logger, "deleted", target)

        if target == self.session.current_conversation_id:
            self.session.reset()

        self.refresh()
        return True

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete through the confirmation gate; returns True when deleted"""
        self.request_delete(conversation_id)

        if self.config.confirm_delete and not self.confirm(DELETE_PROMPT):
            self.cancel_delete()
            return False

        return self.confirm_delete()
