"""
Overrides for running the assistant locally
"""

from dataclasses import dataclass
from config.app_config import APIConfig, AppConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Debug logging, a separate database and the small model"""

    def __post_init__(self):
        self.api = APIConfig.from_secrets()
        self.environment = "development"
        self.debug = True

        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"

        # Test conversations never mix with real ones
        self.storage.db_path = "data/voice_assistant-dev.db"
        self.llm.default_model = "llama-3.1-8b-instant"
        self.ui.app_title = "🧪 AI Voice Assistant (DEV)"


def get_development_config() -> DevelopmentConfig:
    return DevelopmentConfig()
