"""
Application controller - builds the explicit object graph for one client
session and wires the components together.
"""

import time
from typing import Any, Callable, Optional

from infrastructure.config.settings import AppConfig, get_config
from infrastructure.errors import TransportError
from infrastructure.external.backend_client import BackendClient
from infrastructure.monitoring.logging_service import get_logger
from infrastructure.resilience.retry_service import RetryService, get_retry_service
from infrastructure.storage.key_value_store import KeyValueStorage, SQLiteKeyValueStorage
from services.auth_service.auth_manager import AuthManager
from services.auth_service.models import SessionIdentity
from services.auth_service.session_store import PersistedSessionStore
from services.chat_service.conversation_list import ConversationListSynchronizer
from services.chat_service.conversation_session import ConversationSession
from services.chat_service.emotion_display import EmotionDisplay
from services.chat_service.models import SessionEvent
from services.chat_service.retention_sweeper import RetentionSweeper
from services.confirmation import ConfirmCallback, never_confirm

HEALTH_WARNING = "⚠️ Cannot reach the chat service right now. Messages may fail until it is back."


class AppController:
    """
    One controller per browser session. Components receive their
    collaborators explicitly instead of reading ambient globals.
    """

    def __init__(
        self,
        config: AppConfig,
        backend: BackendClient,
        store: PersistedSessionStore,
        confirm: ConfirmCallback = never_confirm,
        clock: Callable[[], float] = time.monotonic,
        retry_service: Optional[RetryService] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config
        self.backend = backend
        self.store = store
        self.health_warning: Optional[str] = None
        self.auth: Optional[AuthManager] = None

        retry_service = retry_service or get_retry_service()

        self.session = ConversationSession(
            backend,
            self.current_identity,
            config.chat,
            emotion_display=EmotionDisplay(config.chat.emotion_dwell_seconds, clock),
            retry_service=retry_service,
            history_retries=config.conversations.list_retries
        )
        self.conversation_list = ConversationListSynchronizer(
            backend,
            self.session,
            self.current_identity,
            config.conversations,
            confirm=confirm,
            retry_service=retry_service
        )
        self.sweeper = RetentionSweeper(backend, self.conversation_list, config.conversations)
        self.auth = AuthManager(
            backend,
            store,
            self.session,
            self.conversation_list,
            self.sweeper,
            config.auth,
            confirm=confirm
        )

        self.session.subscribe(self._on_session_event)

    @classmethod
    def create(
        cls,
        config: Optional[AppConfig] = None,
        storage: Optional[KeyValueStorage] = None,
        backend: Optional[BackendClient] = None,
        namespace: str = "default",
        **kwargs
    ) -> 'AppController':
        config = config or get_config()
        storage = storage or SQLiteKeyValueStorage(config.storage.path, namespace=namespace)
        store = PersistedSessionStore(storage, default_theme=config.ui.default_theme)
        return cls(config, backend or BackendClient.from_config(config), store, **kwargs)

    def current_identity(self) -> Optional[SessionIdentity]:
        return self.auth.identity if self.auth else None

    def _on_session_event(self, event: SessionEvent, payload: Any):
        if event is SessionEvent.REPLY_RECEIVED:
            self.conversation_list.refresh()

    def check_health(self) -> Optional[str]:
        """Check backend health; returns an inline warning when it is unreachable"""
        try:
            self.backend.health_check()
            self.health_warning = None
        except TransportError as e:
            self.logger.warning(f"Health check failed: {e.message}")
            self.health_warning = HEALTH_WARNING
        return self.health_warning

    def startup(self) -> Optional[SessionIdentity]:
        """Run once per browser session: health check, then session restore"""
        self.check_health()
        return self.auth.restore_session()
