"""
End-to-end tests of the wired controller against a fake backend
"""

import httpx
import pytest

from conftest import chat_reply, request_json
from infrastructure.config.settings import AppConfig
from infrastructure.errors import ValidationError
from infrastructure.storage.key_value_store import MemoryKeyValueStorage
from services.app_controller import HEALTH_WARNING, AppController
from services.auth_service.models import Screen, SessionIdentity
from services.auth_service.session_store import PersistedSessionStore
from services.chat_service.models import EmotionAnnotation
from services.confirmation import always_confirm
from services.ui_service.transcript import format_emotion


def conversation_record(conversation_id, count):
    return {"conversation_id": conversation_id, "started_at": "2024-03-05T09:30:00", "message_count": count}


class ControllerTestBase:

    def build(self, backend, clock, retry_service, storage=None):
        self.storage = storage or MemoryKeyValueStorage()
        return AppController.create(
            config=AppConfig(),
            storage=self.storage,
            backend=backend,
            confirm=always_confirm,
            clock=clock,
            retry_service=retry_service
        )


class TestChatFlow(ControllerTestBase):
    """Test login, chat and list refresh wiring"""

    def test_login_chat_and_list_refresh(self, backend, transport, clock, retry_service):
        """Test a first message adopts the conversation and refreshes the list"""
        lists = [[], [conversation_record("c42", 2)]]
        transport.route("POST", "/api/auth/login", (200, {"user_id": "u1", "username": "ana"}))
        transport.route("POST", "/api/conversations/cleanup", (200, {"deleted_count": 0}))
        transport.route("GET", "/api/conversations", lambda request: (200, {"conversations": lists.pop(0)}))
        transport.route("POST", "/api/chat", (200, chat_reply(
            reply="That sounds hard.", conversation_id="c42", emotion="Anxiety", confidence=0.81
        )))
        controller = self.build(backend, clock, retry_service)

        controller.auth.login("ana", "secret1")
        assert controller.conversation_list.is_empty

        controller.session.submit("I feel anxious today")

        chat_body = request_json(transport.calls_to("POST", "/api/chat")[0])
        assert chat_body == {"message": "I feel anxious today", "user_id": "u1", "conversation_id": None}
        assert controller.session.current_conversation_id == "c42"
        assert [c.conversation_id for c in controller.conversation_list.conversations] == ["c42"]
        assert controller.session.emotion_display.current() == EmotionAnnotation("Anxiety", 0.81)
        assert format_emotion(controller.session.emotion_display.current()) == "😰 Anxiety (81%)"

        clock.advance(8)
        assert controller.session.emotion_display.current() is None

    def test_chat_failure_shows_fallback(self, backend, transport, clock, retry_service):
        transport.route("POST", "/api/auth/signup", (201, {"user_id": "u1", "username": "ana"}))
        transport.route("POST", "/api/conversations/cleanup", (200, {"deleted_count": 0}))
        transport.route("POST", "/api/chat", (500, {"error": "Internal server error"}))
        controller = self.build(backend, clock, retry_service)
        controller.auth.signup("ana", "secret1", "secret1")

        controller.session.submit("hello")

        assert controller.session.transcript[-1].text == controller.config.chat.fallback_message
        assert controller.session.send_in_flight is False
        assert transport.calls_to("GET", "/api/conversations") == []

    def test_signup_mismatch_makes_no_request(self, backend, transport, clock, retry_service):
        controller = self.build(backend, clock, retry_service)

        with pytest.raises(ValidationError):
            controller.auth.signup("ana", "secret1", "secret2")

        assert transport.calls == []


class TestStartup(ControllerTestBase):
    """Test startup health check, restore and retention sweep"""

    def test_restore_sweeps_and_refreshes(self, backend, transport, clock, retry_service):
        """Test a stored identity is resumed and old conversations are purged"""
        storage = MemoryKeyValueStorage()
        PersistedSessionStore(storage).save_identity(SessionIdentity("u1", "ana"))
        transport.route("GET", "/api/health", (200, {"status": "ok"}))
        transport.route("POST", "/api/conversations/cleanup", (200, {"deleted_count": 3}))
        transport.route("GET", "/api/conversations", (200, {"conversations": [conversation_record("c9", 4)]}))
        controller = self.build(backend, clock, retry_service, storage=storage)

        identity = controller.startup()

        assert identity == SessionIdentity("u1", "ana")
        assert controller.auth.screen is Screen.CHAT
        assert controller.health_warning is None
        assert controller.sweeper.last_deleted_count == 3
        assert len(transport.calls_to("GET", "/api/conversations")) == 2
        cleanup = transport.calls_to("POST", "/api/conversations/cleanup")[0]
        assert cleanup.url.params["days"] == "7"

    def test_no_identity_shows_login(self, backend, transport, clock, retry_service):
        transport.route("GET", "/api/health", (200, {"status": "ok"}))
        controller = self.build(backend, clock, retry_service)

        assert controller.startup() is None

        assert controller.auth.screen is Screen.LOGIN
        assert [r.url.path for r in transport.calls] == ["/api/health"]

    def test_unreachable_backend_sets_warning(self, backend, transport, clock, retry_service):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport.route("GET", "/api/health", refuse)
        controller = self.build(backend, clock, retry_service)

        controller.startup()

        assert controller.health_warning == HEALTH_WARNING


class TestDeleteFlow(ControllerTestBase):
    """Test deleting the active conversation through the controller"""

    def test_delete_active_resets_session(self, backend, transport, clock, retry_service):
        lists = [[conversation_record("c1", 2)], [conversation_record("c1", 2)], []]
        transport.route("POST", "/api/auth/login", (200, {"user_id": "u1", "username": "ana"}))
        transport.route("POST", "/api/conversations/cleanup", (200, {"deleted_count": 0}))
        transport.route("GET", "/api/conversations", lambda request: (200, {"conversations": lists.pop(0)}))
        transport.route("POST", "/api/chat", (200, chat_reply(conversation_id="c1")))
        transport.route("DELETE", "/api/conversations/c1", (200, {"message": "Deleted"}))
        controller = self.build(backend, clock, retry_service)
        controller.auth.login("ana", "secret1")
        controller.session.submit("hello")

        assert controller.conversation_list.delete_conversation("c1") is True

        assert controller.session.current_conversation_id is None
        assert controller.session.transcript == ()
        assert controller.conversation_list.is_empty
