"""
Authentication service - turns signup/login form input into backend calls,
keeps the persisted identity in sync and drives the visible screen.
"""

from typing import Optional

from infrastructure.config.settings import AuthConfig
from infrastructure.errors import AuthError, TransportError, ValidationError
from infrastructure.external.backend_client import BackendClient
from infrastructure.monitoring.logging_service import get_logger, log_user_interaction
from services.auth_service.models import Screen, SessionIdentity
from services.auth_service.session_store import PersistedSessionStore
from services.chat_service.conversation_list import ConversationListSynchronizer
from services.chat_service.conversation_session import ConversationSession
from services.chat_service.retention_sweeper import RetentionSweeper
from services.confirmation import ConfirmCallback, never_confirm

LOGOUT_PROMPT = "Are you sure you want to logout?"


class AuthManager:
    """
    Auth controller.

    The identity is persisted only after the backend confirms it, so a
    failed signup or login never leaves the client half-authenticated.
    """

    def __init__(
        self,
        backend: BackendClient,
        store: PersistedSessionStore,
        session: ConversationSession,
        conversation_list: ConversationListSynchronizer,
        sweeper: RetentionSweeper,
        config: Optional[AuthConfig] = None,
        confirm: ConfirmCallback = never_confirm
    ):
        self.logger = get_logger(__name__)
        self.backend = backend
        self.store = store
        self.session = session
        self.conversation_list = conversation_list
        self.sweeper = sweeper
        self.config = config or AuthConfig()
        self.confirm = confirm

        self.identity: Optional[SessionIdentity] = None
        self.screen = Screen.LOGIN
        self.logout_pending = False

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    # ==================== validation ====================

    def _validate_credentials(self, username: str, password: str):
        if not username or not password:
            raise ValidationError("Username and password required")

    def validate_signup(self, username: str, password: str, confirm_password: str):
        """Raise ValidationError for input the backend should never see"""
        self._validate_credentials(username, password)

        if self.config.strict_validation:
            if len(username) < self.config.min_username_length:
                raise ValidationError(
                    f"Username must be at least {self.config.min_username_length} characters"
                )
            if len(password) < self.config.min_password_length:
                raise ValidationError(
                    f"Password must be at least {self.config.min_password_length} characters"
                )

        if password != confirm_password:
            raise ValidationError("Passwords do not match")

    # ==================== flows ====================

    def signup(
        self,
        username: str,
        password: str,
        confirm_password: str,
        email: Optional[str] = None
    ) -> SessionIdentity:
        username = (username or "").strip()
        email = (email or "").strip() or None
        self.validate_signup(username, password, confirm_password)

        try:
            result = self.backend.signup(username, password, email)
        except AuthError:
            self.logger.info("Signup rejected by backend")
            raise
        except TransportError as e:
            raise AuthError(f"Signup failed: {e.message}") from e

        identity = self._establish(result.user_id, result.username)
        log_user_interaction(self.logger, "signup", user_id=identity.user_id)
        self.sweeper.sweep(identity.user_id)
        return identity

    def login(self, username: str, password: str) -> SessionIdentity:
        username = (username or "").strip()
        self._validate_credentials(username, password)

        try:
            result = self.backend.login(username, password)
        except AuthError:
            self.logger.info("Login rejected by backend")
            raise
        except TransportError as e:
            raise AuthError(f"Login failed: {e.message}") from e

        identity = self._establish(result.user_id, result.username)
        log_user_interaction(self.logger, "login", user_id=identity.user_id)
        self.conversation_list.refresh(identity.user_id)
        self.sweeper.sweep(identity.user_id)
        return identity

    def _establish(self, user_id: str, username: str) -> SessionIdentity:
        try:
            identity = SessionIdentity(user_id=user_id, username=username)
        except ValueError as e:
            raise AuthError("Authentication response missing user identity") from e

        self.store.save_identity(identity)
        self.identity = identity
        self.logout_pending = False
        self.screen = Screen.CHAT
        return identity

    def restore_session(self) -> Optional[SessionIdentity]:
        """Startup: resume a stored identity, otherwise show the login screen"""
        identity = self.store.load_identity()
        if identity is None:
            self.identity = None
            self.screen = Screen.LOGIN
            return None

        self.identity = identity
        self.screen = Screen.CHAT
        self.logger.info(f"Session restored for user {identity.user_id}")
        self.conversation_list.refresh(identity.user_id)
        self.sweeper.sweep(identity.user_id)
        return identity

    # ==================== logout ====================

    def request_logout(self):
        self.logout_pending = True

    def cancel_logout(self):
        self.logout_pending = False

    def confirm_logout(self):
        """Log out after the user confirmed; no network call is made"""
        user_id = self.identity.user_id if self.identity else None

        self.identity = None
        self.logout_pending = False
        self.store.clear_identity()
        self.session.reset()
        self.conversation_list.clear()
        self.screen = Screen.LOGIN

        log_user_interaction(self.logger, "logout", user_id=user_id)

    def logout(self) -> bool:
        """Log out through the confirmation gate; returns True when logged out"""
        if self.config.confirm_logout and not self.confirm(LOGOUT_PROMPT):
            return False
        self.confirm_logout()
        return True
