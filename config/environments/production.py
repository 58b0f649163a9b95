"""
Overrides for the deployed assistant
"""

from dataclasses import dataclass
from config.app_config import APIConfig, AppConfig


@dataclass
class ProductionConfig(AppConfig):
    """Quieter logs and steadier, faster-failing model calls"""

    def __post_init__(self):
        self.api = APIConfig.from_secrets()
        self.environment = "production"
        self.debug = False

        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"

        self.llm.temperature = 0.6
        self.llm.timeout_seconds = 20.0
        self.ui.app_title = "🎙️ AI Voice Assistant"


def get_production_config() -> ProductionConfig:
    return ProductionConfig()
