"""
Tests for configuration system
"""

import pytest
import os
import tempfile
from pathlib import Path
from config.app_config import (
    AppConfig, APIConfig, LLMConfig, StorageConfig, ConversationConfig,
    VoiceConfig, UIConfig, DEFAULT_LLM_API_URL, get_config, reload_config
)


class TestAPIConfig:
    """Test API configuration"""

    def test_from_secrets_fallback_to_env(self, monkeypatch):
        """Test fallback to environment variables when secrets unavailable"""
        monkeypatch.setenv("GROQ_API_KEY", "test-groq-key")
        monkeypatch.delenv("LLM_API_URL", raising=False)

        config = APIConfig.from_secrets()

        assert config.groq_api_key == "test-groq-key"
        assert config.llm_api_url == DEFAULT_LLM_API_URL

    def test_legacy_key_name(self, monkeypatch):
        """LLM_API_KEY is accepted when GROQ_API_KEY is absent"""
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.setenv("LLM_API_KEY", "legacy-key")
        monkeypatch.setenv("LLM_API_URL", "http://localhost:9999/v1")

        config = APIConfig.from_env()

        assert config.groq_api_key == "legacy-key"
        assert config.llm_api_url == "http://localhost:9999/v1"

    def test_missing_key_is_empty(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.delenv("LLM_API_KEY", raising=False)

        assert APIConfig.from_env().groq_api_key == ""


class TestLLMConfig:
    """Test LLM configuration"""

    def test_default_values(self):
        """Test default configuration values"""
        config = LLMConfig()

        assert config.default_model == "llama-3.3-70b-versatile"
        assert config.default_model in config.recommended_models
        assert config.temperature == 0.8
        assert config.max_tokens == 2048
        assert config.top_p == 0.95
        assert "SAME LANGUAGE" in config.system_prompt

    def test_to_dict(self):
        """Test conversion to dictionary"""
        config = LLMConfig()

        assert config.to_dict() == {
            "model": "llama-3.3-70b-versatile",
            "temperature": 0.8,
            "max_tokens": 2048,
            "top_p": 0.95
        }


class TestSectionDefaults:
    """Defaults of the smaller sections"""

    def test_storage_defaults(self):
        config = StorageConfig()

        assert config.backend == "sqlite"
        assert config.conversations_key == "voice-assistant-conversations"
        assert config.current_key == "voice-assistant-current"

    def test_conversation_defaults(self):
        config = ConversationConfig()

        assert config.default_title == "New Conversation"
        assert config.title_max_words == 5
        assert config.title_max_chars == 50

    def test_voice_defaults(self):
        config = VoiceConfig()

        assert config.auto_listen_delay_seconds == 0.5
        assert config.silence_timeout_seconds == 2.0
        assert config.auto_stop is True
        assert config.continuous is False

    def test_ui_defaults(self):
        assert "Welcome" in UIConfig().welcome_message


class TestAppConfig:
    """Test main application configuration"""

    def test_load_with_environment_overrides(self, monkeypatch):
        """Test loading with environment-specific overrides"""
        monkeypatch.setenv("APP_ENV", "production")

        config = AppConfig.load()

        assert config.environment == "production"
        assert config.debug is False
        assert config.logging.level == "WARNING"

    def test_load_development(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")

        config = AppConfig.load()

        assert config.debug is True
        assert config.logging.level == "DEBUG"

    def test_validation_missing_api_key(self):
        """Test validation reports a missing API key"""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = AppConfig()
            config.api.groq_api_key = ""
            config.storage.db_path = os.path.join(temp_dir, "db", "test.db")
            config.logging.log_file = os.path.join(temp_dir, "logs", "test.log")

            errors = config.validate()

            assert "Groq API key is required" in errors

    def test_validation_creates_directories(self):
        """Test validation creates the database and log directories"""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = AppConfig()
            config.api.groq_api_key = "test-key"
            config.storage.db_path = os.path.join(temp_dir, "db", "test.db")
            config.logging.log_file = os.path.join(temp_dir, "logs", "test.log")

            errors = config.validate()

            assert errors == []
            assert Path(temp_dir, "db").exists()
            assert Path(temp_dir, "logs").exists()

    def test_validation_unknown_backend(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config = AppConfig()
            config.api.groq_api_key = "test-key"
            config.storage.backend = "redis"
            config.logging.log_file = os.path.join(temp_dir, "logs", "test.log")

            errors = config.validate()

            assert any("redis" in e for e in errors)


class TestGlobalConfig:
    """Test global configuration functions"""

    def test_get_config_singleton(self):
        """Test get_config returns same instance"""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_reload_config(self):
        """Test config reloading"""
        config1 = get_config()
        config2 = reload_config()

        assert config1 is not config2
