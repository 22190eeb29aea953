"""
Configuration infrastructure - typed settings and environment overrides.
"""

from .settings import (
    AppConfig,
    APIConfig,
    ChatConfig,
    AuthConfig,
    ConversationConfig,
    StorageConfig,
    UIConfig,
    LoggingConfig,
    THEMES,
    get_config,
    reload_config,
    get_api_base_url
)

__all__ = [
    'AppConfig',
    'APIConfig',
    'ChatConfig',
    'AuthConfig',
    'ConversationConfig',
    'StorageConfig',
    'UIConfig',
    'LoggingConfig',
    'THEMES',
    'get_config',
    'reload_config',
    'get_api_base_url'
]
