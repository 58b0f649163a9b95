"""
Test environment-specific configurations
"""

import os
import pytest
from config.environments import get_environment_config
from config.environments.development import get_development_config
from config.environments.production import get_production_config


class TestEnvironmentConfigs:
    """Test environment-specific configuration loading"""

    def test_development_config(self):
        """Test development configuration"""
        config = get_development_config()

        assert config.environment == "development"
        assert config.debug == True
        assert config.logging.level == "DEBUG"
        assert "DEV" in config.ui.app_title
        assert config.storage.db_path.endswith("-dev.db")
        assert config.llm.default_model == "llama-3.1-8b-instant"

    def test_production_config(self):
        """Test production configuration"""
        config = get_production_config()

        assert config.environment == "production"
        assert config.debug == False
        assert config.logging.level == "INFO"
        assert "DEV" not in config.ui.app_title
        assert config.llm.temperature == 0.6

    def test_environment_selection_development(self, monkeypatch):
        """Test environment selection for development"""
        monkeypatch.setenv("APP_ENV", "development")

        config = get_environment_config()

        assert config.environment == "development"
        assert config.debug == True

    def test_environment_selection_production(self, monkeypatch):
        """Test environment selection for production"""
        monkeypatch.setenv("APP_ENV", "production")

        config = get_environment_config()

        assert config.environment == "production"
        assert config.debug == False

    def test_default_environment(self, monkeypatch):
        """Test default environment when APP_ENV is not set"""
        monkeypatch.delenv("APP_ENV", raising=False)

        config = get_environment_config()

        # Should default to development
        assert config.environment == "development"

    def test_config_validation(self, tmp_path):
        """Test that all environment configs pass validation apart from the API key"""
        configs = [
            get_development_config(),
            get_production_config()
        ]

        for config in configs:
            config.storage.db_path = str(tmp_path / "db" / "test.db")
            config.logging.log_file = str(tmp_path / "logs" / "test.log")
            errors = config.validate()
            critical_errors = [e for e in errors if "API key" not in e]
            assert critical_errors == []
