"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from infrastructure.config.settings import AppConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""

    def __post_init__(self):
        self.api = AppConfig.load().api

        # Production-specific overrides
        self.environment = "production"
        self.debug = False

        # Production logging - no debug records, kept on disk
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-client.log"

        self.ui.app_title = "💙 Melo"

        # Stricter signup rules for public deployments
        self.auth.strict_validation = True


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    return ProductionConfig()
