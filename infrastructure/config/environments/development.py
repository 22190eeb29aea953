"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from infrastructure.config.settings import AppConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""

    def __post_init__(self):
        # Start from the base configuration (including env-provided API settings)
        base_config = AppConfig.load()

        self.api = base_config.api
        self.chat = base_config.chat
        self.auth = base_config.auth
        self.conversations = base_config.conversations
        self.storage = base_config.storage
        self.ui = base_config.ui
        self.logging = base_config.logging

        # Development-specific overrides
        self.environment = "development"
        self.debug = True

        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-client.log"

        self.ui.app_title = "🧪 Melo (DEV)"

        # Exercise the optional backend notice while developing
        self.chat.notify_end_conversation = True


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    return DevelopmentConfig()
