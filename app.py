import streamlit as st

from infrastructure.config.settings import get_config
from infrastructure.monitoring.logging_service import initialize_logging, get_logger
from services.ui_service.chat_interface import get_chat_interface

# Initialize logging and error tracking
error_tracker = initialize_logging()
logger = get_logger(__name__)

config = get_config()

st.set_page_config(page_title="Melo", page_icon="💙", layout="centered")


def main_app():
    """Render the login screen or the chat screen for this browser"""
    # Keep the chat input reachable on small screens
    st.markdown("""
    <style>
    @media (max-width: 768px) {
        .main .block-container {
            padding-left: 1rem;
            padding-right: 1rem;
        }
    }
    </style>
    """, unsafe_allow_html=True)

    try:
        get_chat_interface().render()
    except Exception as e:
        error_tracker.track_error(e, "render_app")
        st.error("🔧 **Unexpected error** - Something went wrong. Please refresh the page.")


main_app()
