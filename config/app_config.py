"""
Configuration for the voice assistant

One dataclass per concern, gathered in AppConfig. API credentials come from
Streamlit secrets with environment variables as the fallback; per-environment
overrides live in config.environments.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import streamlit as st
import os
from pathlib import Path


DEFAULT_LLM_API_URL = "https://api.groq.com/openai/v1"


@dataclass
class APIConfig:
    """API configuration settings"""
    groq_api_key: str = ""
    llm_api_url: str = DEFAULT_LLM_API_URL

    @classmethod
    def from_env(cls) -> 'APIConfig':
        """Load API config from environment variables"""
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY") or os.getenv("LLM_API_KEY", ""),
            llm_api_url=os.getenv("LLM_API_URL", DEFAULT_LLM_API_URL)
        )

    @classmethod
    def from_secrets(cls) -> 'APIConfig':
        """Load API config from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls.from_env()

        try:
            return cls(
                groq_api_key=st.secrets.get("GROQ_API_KEY") or st.secrets.get("LLM_API_KEY", ""),
                llm_api_url=st.secrets.get("LLM_API_URL", DEFAULT_LLM_API_URL)
            )
        except Exception:
            # Fallback to environment variables if secrets not available
            return cls.from_env()


@dataclass
class LLMConfig:
    """Language model configuration"""
    default_model: str = "llama-3.3-70b-versatile"
    recommended_models: List[str] = field(default_factory=lambda: [
        "llama-3.3-70b-versatile",
        "llama-3.1-70b-versatile",
        "llama-3.1-8b-instant",
        "mixtral-8x7b-32768",
        "gemma2-9b-it",
    ])
    transcription_model: str = "whisper-large-v3"
    temperature: float = 0.8
    max_tokens: int = 2048
    top_p: float = 0.95
    timeout_seconds: float = 30.0
    system_prompt: str = """You are an intelligent and friendly AI voice assistant that can communicate in multiple languages.

CRITICAL: Always respond in the SAME LANGUAGE that the user is using. If the user speaks in Urdu, respond in Urdu. If they speak in Hindi, respond in Hindi. If they speak in Arabic, respond in Arabic. Match the user's language exactly.

Key guidelines:
- Detect the user's language automatically and respond in that language
- Keep responses concise and natural for voice interaction (2-4 sentences typically)
- Be conversational and engaging, as if speaking to a friend
- Provide accurate and helpful information
- If unsure, acknowledge it honestly in the user's language
- For complex topics, break down information into digestible parts
- Be empathetic and understanding
- For questions requiring real-time data (weather, news, stock prices), acknowledge that you may not have the latest information

Languages supported: English, Urdu (اردو), Hindi (हिन्दी), Arabic (العربية), and many more."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to keyword arguments for a chat completion request"""
        return {
            "model": self.default_model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p
        }


@dataclass
class StorageConfig:
    """Durable conversation storage configuration"""
    backend: str = "sqlite"  # "sqlite" or "memory"
    db_path: str = "data/voice_assistant.db"
    conversations_key: str = "voice-assistant-conversations"
    current_key: str = "voice-assistant-current"


@dataclass
class ConversationConfig:
    """Conversation title policy"""
    default_title: str = "New Conversation"
    title_max_words: int = 5
    title_max_chars: int = 50
    ellipsis: str = "..."


@dataclass
class VoiceConfig:
    """Speech capture and playback configuration"""
    auto_listen_delay_seconds: float = 0.5
    silence_timeout_seconds: float = 2.0
    continuous: bool = False
    auto_stop: bool = True
    capture_language: str = "en-US"
    default_language: str = "en"
    slow_speech: bool = False


@dataclass
class UIConfig:
    """User interface configuration"""
    app_title: str = "AI Voice Assistant"
    welcome_message: str = """👋 **Welcome!**

Record a question with the microphone or type it below. I answer in the language you speak and read the reply out loud.

Your conversations are kept on this machine and listed in the sidebar."""


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = True
    log_file: str = "logs/app.log"


@dataclass
class AppConfig:
    """Main application configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        # Load API configuration from secrets/environment
        config.api = APIConfig.from_secrets()

        # Apply environment-specific overrides
        if config.environment == "production":
            config.debug = False
            config.logging.level = "WARNING"
        elif config.environment == "development":
            config.debug = True
            config.logging.level = "DEBUG"

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        # Check required API keys
        if not self.api.groq_api_key:
            errors.append("Groq API key is required")

        if self.storage.backend not in ("sqlite", "memory"):
            errors.append(f"Unknown storage backend '{self.storage.backend}'")

        # Directories for the database and log file are created on demand
        paths = []
        if self.storage.backend == "sqlite":
            paths.append(self.storage.db_path)
        if self.logging.enable_file_logging:
            paths.append(self.logging.log_file)
        for path in paths:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        if self.llm.default_model not in self.llm.recommended_models:
            errors.append(f"Default model '{self.llm.default_model}' is not a recommended model")

        if self.conversation.title_max_words < 1:
            errors.append("Title word cap must be at least 1")

        return errors


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        from config.environments import get_environment_config
        _config = get_environment_config()

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


def get_groq_api_key() -> str:
    """Get Groq API key"""
    return get_config().api.groq_api_key
