"""
Retention sweeper - asks the backend to purge conversations older than the
configured age when a session starts.
"""

from typing import Optional

from infrastructure.config.settings import ConversationConfig
from infrastructure.errors import TransportError
from infrastructure.external.backend_client import BackendClient
from infrastructure.monitoring.logging_service import get_logger
from services.chat_service.conversation_list import ConversationListSynchronizer


class RetentionSweeper:
    """Fire-and-forget cleanup; failures are logged and never retried"""

    def __init__(
        self,
        backend: BackendClient,
        conversation_list: ConversationListSynchronizer,
        config: Optional[ConversationConfig] = None
    ):
        self.logger = get_logger(__name__)
        self.backend = backend
        self.conversation_list = conversation_list
        self.config = config or ConversationConfig()
        self.last_deleted_count = 0

    def sweep(self, user_id: str, max_age_days: Optional[int] = None) -> int:
        """Returns the number of conversations the backend reports deleted"""
        if not self.config.retention_enabled:
            return 0

        days = max_age_days if max_age_days is not None else self.config.retention_days

        try:
            deleted = self.backend.cleanup_conversations(user_id, days)
        except TransportError as e:
            self.logger.warning(f"Retention sweep failed: {e.message}")
            return 0

        self.last_deleted_count = deleted
        if deleted > 0:
            self.logger.info(f"Retention sweep removed {deleted} conversation(s) older than {days} days")
            self.conversation_list.refresh(user_id)

        return deleted
