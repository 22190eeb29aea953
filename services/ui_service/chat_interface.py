"""
Chat interface service - Streamlit rendering adapter.
Reads state from the AppController and forwards user actions to it; all
business rules live in the services it calls.
"""

import hashlib
import uuid
from typing import Any

import streamlit as st

from infrastructure.errors import AuthError, ValidationError
from infrastructure.monitoring.logging_service import get_logger
from services.app_controller import AppController
from services.auth_service.models import Screen
from services.chat_service.emotion_display import TransientDisplay
from services.chat_service.models import SessionEvent
from services.ui_service.transcript import (
    EMPTY_LIST_PLACEHOLDER,
    HISTORY_SUBTITLE,
    NEW_CHAT_SUBTITLE,
    format_char_limit,
    format_conversation_label,
    format_emotion,
    render_transcript,
    welcome_text
)

CLIENT_PARAM = "client"
CONTROLLER_KEY = "app_controller"
LOGIN_ERROR_KEY = "login_error"
SIGNUP_ERROR_KEY = "signup_error"
ESCALATION_KEY = "escalation_notice"

DARK_THEME_CSS = """
<style>
.stApp { background-color: #0f172a; color: #e2e8f0; }
[data-testid="stSidebar"] { background-color: #1e293b; }
</style>
"""


def get_client_namespace() -> str:
    """
    Per-browser storage namespace.

    A random id kept in the URL survives reloads and bookmarks. It is scoped
    by a hash of the User-Agent, so a copied link opened in another browser
    or on another device starts signed out. Two browsers with an identical
    User-Agent opening the same link still share a namespace.
    """
    client_id = st.query_params.get(CLIENT_PARAM)
    if not client_id:
        client_id = uuid.uuid4().hex
        st.query_params[CLIENT_PARAM] = client_id
    agent = st.context.headers.get("User-Agent") or ""
    fingerprint = hashlib.sha256(agent.encode("utf-8")).hexdigest()[:12]
    return f"{client_id}-{fingerprint}"


def get_app_controller() -> AppController:
    """Get (or build and start) the controller for this browser session"""
    if CONTROLLER_KEY not in st.session_state:
        controller = AppController.create(namespace=get_client_namespace())
        controller.session.subscribe(_remember_escalation)
        controller.startup()
        st.session_state[CONTROLLER_KEY] = controller
    return st.session_state[CONTROLLER_KEY]


def _remember_escalation(event: SessionEvent, payload: Any):
    if event is SessionEvent.ESCALATION_REQUESTED:
        st.session_state[ESCALATION_KEY] = True


def _notice(key: str, seconds: float) -> TransientDisplay:
    if key not in st.session_state:
        st.session_state[key] = TransientDisplay(seconds)
    return st.session_state[key]


class ChatInterface:
    """
    Streamlit views for the login screen, the conversation sidebar and the
    chat transcript.
    """

    def __init__(self, controller: AppController):
        self.logger = get_logger(__name__)
        self.controller = controller
        self.config = controller.config

    # ==================== page ====================

    def render(self):
        if self.controller.store.get_theme() == "dark":
            st.markdown(DARK_THEME_CSS, unsafe_allow_html=True)

        if self.controller.health_warning:
            st.warning(self.controller.health_warning)

        if self.controller.auth.screen is Screen.CHAT and self.controller.auth.is_authenticated:
            self.render_chat_screen()
        else:
            self.render_login_screen()

    # ==================== auth ====================

    def render_login_screen(self):
        st.title(self.config.ui.app_title)
        st.caption(self.config.ui.subtitle)

        login_tab, signup_tab = st.tabs(["🔑 Login", "📝 Sign up"])

        with login_tab:
            with st.form("login_form"):
                username = st.text_input("Username")
                password = st.text_input("Password", type="password")
                submitted = st.form_submit_button("Login", type="primary", use_container_width=True)

            if submitted:
                try:
                    self.controller.auth.login(username, password)
                    st.rerun()
                except (ValidationError, AuthError) as e:
                    _notice(LOGIN_ERROR_KEY, self.config.auth.error_display_seconds).show(e.message)

            self._render_auth_error(LOGIN_ERROR_KEY)

        with signup_tab:
            with st.form("signup_form"):
                username = st.text_input("Username", key="signup_username")
                email = st.text_input("Email (optional)", key="signup_email")
                password = st.text_input("Password", type="password", key="signup_password")
                confirm_password = st.text_input("Confirm password", type="password", key="signup_confirm")
                submitted = st.form_submit_button("Create account", type="primary", use_container_width=True)

            if submitted:
                try:
                    self.controller.auth.signup(username, password, confirm_password, email)
                    st.rerun()
                except (ValidationError, AuthError) as e:
                    _notice(SIGNUP_ERROR_KEY, self.config.auth.error_display_seconds).show(e.message)

            self._render_auth_error(SIGNUP_ERROR_KEY)

    def _render_auth_error(self, key: str):
        notice = _notice(key, self.config.auth.error_display_seconds)
        if not notice.is_visible:
            return

        @st.fragment(run_every=1)
        def auth_error():
            message = notice.current()
            if message:
                st.error(message)

        auth_error()

    # ==================== sidebar ====================

    def render_conversation_sidebar(self):
        controller = self.controller
        conversation_list = controller.conversation_list
        session = controller.session

        with st.sidebar:
            st.markdown(f"**👤 {controller.auth.identity.username}**")

            if st.button("➕ New chat", use_container_width=True, type="primary"):
                session.start_new()
                st.rerun()

            st.markdown("## 💬 Conversations")

            if conversation_list.last_error:
                st.error(conversation_list.last_error)

            if conversation_list.is_empty:
                st.caption(EMPTY_LIST_PLACEHOLDER)

            for conversation in conversation_list.conversations:
                label = format_conversation_label(conversation)
                is_current = conversation.conversation_id == session.current_conversation_id
                select_col, delete_col = st.columns([5, 1])

                with select_col:
                    if st.button(
                        f"{'✅' if is_current else '💬'} {label.title}",
                        key=f"select_{label.conversation_id}",
                        help=label.detail,
                        use_container_width=True
                    ):
                        conversation_list.select_conversation(label.conversation_id)
                        st.rerun()
                    st.caption(label.detail)

                with delete_col:
                    if st.button("🗑️", key=f"delete_{label.conversation_id}", help="Delete conversation"):
                        conversation_list.request_delete(label.conversation_id)
                        if not self.config.conversations.confirm_delete:
                            conversation_list.confirm_delete()
                        st.rerun()

                if conversation_list.pending_delete.target_conversation_id == label.conversation_id:
                    st.warning("Delete this conversation? This cannot be undone.")
                    yes_col, no_col = st.columns(2)
                    if yes_col.button("Delete", key=f"confirm_delete_{label.conversation_id}", type="primary"):
                        conversation_list.confirm_delete()
                        st.rerun()
                    if no_col.button("Cancel", key=f"cancel_delete_{label.conversation_id}"):
                        conversation_list.cancel_delete()
                        st.rerun()

            st.divider()
            self._render_settings()

    def _render_settings(self):
        controller = self.controller
        store = controller.store

        dark = st.toggle("🌙 Dark mode", value=store.get_theme() == "dark")
        if dark != (store.get_theme() == "dark"):
            store.toggle_theme()
            st.rerun()

        if controller.auth.logout_pending:
            st.warning("Are you sure you want to logout?")
            yes_col, no_col = st.columns(2)
            if yes_col.button("Logout", key="confirm_logout", type="primary"):
                controller.auth.confirm_logout()
                st.rerun()
            if no_col.button("Cancel", key="cancel_logout"):
                controller.auth.cancel_logout()
                st.rerun()
        elif st.button("🚪 Logout", use_container_width=True):
            if self.config.auth.confirm_logout:
                controller.auth.request_logout()
            else:
                controller.auth.confirm_logout()
            st.rerun()

    # ==================== chat ====================

    def render_chat_screen(self):
        session = self.controller.session

        self.render_conversation_sidebar()

        st.title(self.config.ui.app_title)
        st.caption(HISTORY_SUBTITLE if session.viewing_history else NEW_CHAT_SUBTITLE)

        if st.session_state.get(ESCALATION_KEY):
            st.error(self.config.ui.escalation_message)
            if st.button("Dismiss", key="dismiss_escalation"):
                st.session_state[ESCALATION_KEY] = False
                st.rerun()

        self.render_chat_messages()
        self.render_emotion_indicator()
        self.render_chat_input()

    def render_chat_input(self):
        session = self.controller.session
        prompt = st.chat_input(
            "How are you feeling?",
            max_chars=self.config.chat.max_message_length,
            disabled=session.send_in_flight
        )
        st.caption(format_char_limit(self.config.chat.max_message_length))
        if prompt:
            self._submit(prompt)

    def render_chat_messages(self):
        session = self.controller.session

        if session.history_error:
            st.error(f"⚠️ {session.history_error}")
            return

        if not session.transcript and session.current_conversation_id is None:
            with st.chat_message("assistant", avatar="💙"):
                st.markdown(welcome_text(self.config.ui.welcome_message, self.controller.auth.identity.username))
            return

        for rendered in render_transcript(session.transcript):
            with st.chat_message(rendered.role, avatar=rendered.avatar):
                for paragraph in rendered.paragraphs:
                    st.markdown(paragraph)
                st.caption(rendered.time_label)

    def render_emotion_indicator(self):
        display = self.controller.session.emotion_display
        if not display.is_visible:
            return

        @st.fragment(run_every=1)
        def emotion_indicator():
            annotation = display.current()
            if annotation:
                st.info(format_emotion(annotation))

        emotion_indicator()

    def _submit(self, prompt: str):
        session = self.controller.session
        try:
            text = session.prepare_message(prompt)
        except ValidationError as e:
            st.error(e.message)
            return
        if text is None:
            return

        with st.chat_message("user", avatar="👤"):
            st.markdown(text)

        with st.spinner("Melo is typing..."):
            session.submit(text)
        st.rerun()


def get_chat_interface() -> ChatInterface:
    """Get the chat interface bound to this browser session's controller"""
    return ChatInterface(get_app_controller())
