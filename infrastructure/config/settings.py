"""
Unified Configuration System for the Melo chat client

This module provides a centralized configuration system that consolidates all client settings,
supports environment-based overrides, and provides type-safe configuration access.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import os
from pathlib import Path


THEMES = ("light", "dark")


@dataclass
class APIConfig:
    """Backend API configuration settings"""
    base_url: str = "http://localhost:5000/api"
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> 'APIConfig':
        """Load API config from environment variables"""
        defaults = cls()
        timeout_raw = os.getenv("MELO_API_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else defaults.timeout_seconds
        except ValueError:
            timeout = defaults.timeout_seconds

        return cls(
            base_url=os.getenv("MELO_API_BASE_URL", defaults.base_url).rstrip("/"),
            timeout_seconds=timeout
        )


@dataclass
class ChatConfig:
    """Message submission and reply display settings"""
    max_message_length: int = 1000
    emotion_dwell_seconds: float = 8.0
    fallback_message: str = "Sorry, something went wrong. Please try again."
    notify_end_conversation: bool = False
    escalation_alerts: bool = True


@dataclass
class AuthConfig:
    """Authentication form validation and confirmation settings"""
    strict_validation: bool = False
    min_username_length: int = 3
    min_password_length: int = 6
    confirm_logout: bool = True
    error_display_seconds: float = 5.0


@dataclass
class ConversationConfig:
    """Saved conversation list, deletion and retention settings"""
    confirm_delete: bool = True
    retention_enabled: bool = True
    retention_days: int = 7
    list_retries: int = 2
    retry_base_delay: float = 0.5


@dataclass
class StorageConfig:
    """Durable client state settings"""
    path: str = field(default_factory=lambda: os.getenv("MELO_STATE_PATH", ".melo/client_state.db"))


@dataclass
class UIConfig:
    """User interface configuration"""
    app_title: str = "💙 Melo"
    subtitle: str = "Your adaptive AI companion"
    welcome_message: str = (
        "Hello {username}! I'm Melo, your adaptive AI companion. "
        "I learn from our conversations to better understand you. "
        "How are you feeling today?"
    )
    escalation_message: str = (
        "🚨 It sounds like you may be going through something serious. "
        "If you are in danger, please contact your local emergency number "
        "or a crisis line right away."
    )
    default_theme: str = "light"


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = False
    log_file: str = "logs/client.log"


@dataclass
class AppConfig:
    """Main application configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    conversations: ConversationConfig = field(default_factory=ConversationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        config.api = APIConfig.from_env()

        # Apply environment-specific overrides
        if config.environment == "production":
            config.debug = False
            config.logging.level = "INFO"
        elif config.environment == "development":
            config.debug = True
            config.logging.level = "DEBUG"

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.api.base_url:
            errors.append("API base URL is required")

        if self.api.timeout_seconds <= 0:
            errors.append("API timeout must be positive")

        if self.chat.max_message_length <= 0:
            errors.append("Maximum message length must be positive")

        if self.chat.emotion_dwell_seconds <= 0:
            errors.append("Emotion dwell time must be positive")

        if self.conversations.retention_days <= 0:
            errors.append("Retention days must be positive")

        if self.ui.default_theme not in THEMES:
            errors.append(f"Unknown default theme '{self.ui.default_theme}'")

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Non-secret summary used in debug logging"""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "base_url": self.api.base_url,
            "timeout_seconds": self.api.timeout_seconds,
            "retention_days": self.conversations.retention_days,
        }


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance for the current APP_ENV"""
    global _config
    if _config is None:
        from infrastructure.config.environments import get_environment_config
        _config = get_environment_config()

        # Validate configuration
        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> AppConfig:
    """Reload configuration (useful for testing)"""
    global _config
    _config = None
    return get_config()


def get_api_base_url() -> str:
    """Get the backend base URL"""
    return get_config().api.base_url
