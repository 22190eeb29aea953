"""
Tests for the Streamlit adapter's per-browser wiring
"""

from unittest.mock import MagicMock, Mock, patch

from infrastructure.config.settings import AppConfig
from services.chat_service.models import SessionEvent
from services.ui_service import chat_interface

FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"
SAFARI = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) AppleWebKit/605.1.15 Version/17.5 Mobile Safari/604.1"


class MockSessionState(dict):
    """Mock Streamlit session state for testing"""


def mock_streamlit(query_params=None, user_agent=FIREFOX):
    mock_st = MagicMock()
    mock_st.query_params = {} if query_params is None else query_params
    mock_st.context.headers = {"User-Agent": user_agent}
    mock_st.session_state = MockSessionState()
    return mock_st


def namespace_for(query_params, user_agent=FIREFOX):
    with patch.object(chat_interface, "st", mock_streamlit(query_params, user_agent)):
        return chat_interface.get_client_namespace()


class TestClientNamespace:
    """Test the browser namespace kept in the URL"""

    def test_reload_in_same_browser_keeps_namespace(self):
        assert namespace_for({"client": "abc123"}) == namespace_for({"client": "abc123"})
        assert namespace_for({"client": "abc123"}).startswith("abc123-")

    def test_new_client_id_is_written_to_url(self):
        mock_st = mock_streamlit()

        with patch.object(chat_interface, "st", mock_st):
            namespace = chat_interface.get_client_namespace()

        assert mock_st.query_params["client"]
        assert namespace.startswith(mock_st.query_params["client"] + "-")

    def test_copied_link_in_other_browser_gets_own_namespace(self):
        """Test a shared ?client= link does not carry the sender's session"""
        assert namespace_for({"client": "abc123"}, FIREFOX) != namespace_for({"client": "abc123"}, SAFARI)

    def test_missing_user_agent_still_yields_namespace(self):
        assert namespace_for({"client": "abc123"}, user_agent=None).startswith("abc123-")


class TestAppControllerCache:
    """Test one controller per browser session"""

    def test_controller_built_and_started_once(self):
        mock_st = mock_streamlit({"client": "abc123"})
        controller = Mock()

        with patch.object(chat_interface, "st", mock_st), \
                patch.object(chat_interface.AppController, "create", return_value=controller) as create:
            first = chat_interface.get_app_controller()
            second = chat_interface.get_app_controller()
            expected_namespace = chat_interface.get_client_namespace()

        assert first is second is controller
        create.assert_called_once_with(namespace=expected_namespace)
        controller.startup.assert_called_once()
        controller.session.subscribe.assert_called_once_with(chat_interface._remember_escalation)

    def test_escalation_event_sets_banner_flag(self):
        mock_st = mock_streamlit()

        with patch.object(chat_interface, "st", mock_st):
            chat_interface._remember_escalation(SessionEvent.REPLY_RECEIVED, None)
            assert chat_interface.ESCALATION_KEY not in mock_st.session_state

            chat_interface._remember_escalation(SessionEvent.ESCALATION_REQUESTED, None)

        assert mock_st.session_state[chat_interface.ESCALATION_KEY] is True


class TestChatInput:
    """Test the message input and its length hint"""

    def setup_method(self):
        self.controller = Mock()
        self.controller.config = AppConfig()
        self.controller.session.send_in_flight = False
        self.interface = chat_interface.ChatInterface(self.controller)

    def test_length_hint_shown_while_idle(self):
        mock_st = mock_streamlit()
        mock_st.chat_input.return_value = None

        with patch.object(chat_interface, "st", mock_st):
            self.interface.render_chat_input()

        mock_st.caption.assert_called_once_with("Up to 1,000 characters per message")
        self.controller.session.submit.assert_not_called()

    def test_sent_bubble_has_no_counter(self):
        """Test the echoed message carries no length caption"""
        mock_st = mock_streamlit()
        mock_st.chat_input.return_value = "hello"
        self.controller.session.prepare_message.return_value = "hello"

        with patch.object(chat_interface, "st", mock_st):
            self.interface.render_chat_input()

        mock_st.caption.assert_called_once_with("Up to 1,000 characters per message")
        mock_st.markdown.assert_called_once_with("hello")
        self.controller.session.submit.assert_called_once_with("hello")
        mock_st.rerun.assert_called_once()
