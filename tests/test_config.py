"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from flow_pipeline.config import Environment, Settings, get_settings


class TestSettings:
    """Test Settings model and validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.environment == Environment.DEV
        assert settings.debug is True  # Auto-set from DEV environment
        assert settings.default_language == "pt"
        assert settings.agent_timeout_seconds == 270.0
        assert settings.dispatch_execution_ceiling_seconds == 300.0
        assert settings.poll_interval_seconds == 5.0
        assert settings.poll_budget_seconds == 360.0

    def test_agent_timeout_must_be_below_execution_ceiling(self):
        """A timeout at or above the ceiling would leave jobs stuck in running."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                _env_file=None,
                agent_timeout_seconds=300,
                dispatch_execution_ceiling_seconds=300,
            )
        assert "AGENT_TIMEOUT_SECONDS" in str(exc_info.value)

    def test_qa_stage_runs_under_its_own_ceiling(self):
        settings = Settings(_env_file=None)

        assert settings.execution_ceiling_for("qa") == 120.0
        assert settings.agent_timeout_for("qa") < 120.0
        assert settings.agent_timeout_for("research") == 270.0
        assert settings.execution_ceiling_for("content_planner") == 300.0

    def test_stage_timeout_must_be_below_its_ceiling(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None, stage_timeout_seconds={"qa": 150.0})
        assert "'qa'" in str(exc_info.value)

    def test_stage_ceiling_override_alone_is_checked_against_default_timeout(self):
        """A lowered ceiling with no timeout override still needs a shorter timeout."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, stage_execution_ceiling_seconds={"kb_packager": 60.0})

    def test_stage_overrides_from_environment(self, monkeypatch):
        monkeypatch.setenv("STAGE_TIMEOUT_SECONDS", '{"qa": 90}')

        settings = Settings(_env_file=None)
        assert settings.agent_timeout_for("qa") == 90.0

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, agent_timeout_seconds=0)

    def test_production_rejects_default_secrets(self):
        with pytest.raises(RuntimeError) as exc_info:
            Settings(_env_file=None, environment=Environment.PROD)

        message = str(exc_info.value)
        assert "PRODUCTION STARTUP BLOCKED" in message
        assert "LITELLM_API_KEY" in message
        assert "DATABASE_URL" in message

    def test_production_rejects_offline_llm(self):
        with pytest.raises(RuntimeError, match="LLM_OFFLINE_MODE"):
            Settings(
                _env_file=None,
                environment=Environment.PROD,
                litellm_api_key="sk-live-0123456789",
                database_url="postgresql+asyncpg://flow:Zr8q-long-unique@db:5432/flow",
                llm_offline_mode=True,
            )

    def test_production_accepts_real_secrets(self):
        settings = Settings(
            _env_file=None,
            environment=Environment.PROD,
            litellm_api_key="sk-live-0123456789",
            database_url="postgresql+asyncpg://flow:Zr8q-long-unique@db:5432/flow",
        )
        assert settings.is_prod is True
        assert settings.is_dev is False
        assert settings.debug is False

    def test_test_environment_counts_as_dev(self):
        settings = Settings(_env_file=None, environment=Environment.TEST)
        assert settings.is_dev is True
        assert settings.is_prod is False

    def test_environment_variables_override_defaults(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_LANGUAGE", "en")
        monkeypatch.setenv("POLL_BUDGET_SECONDS", "42")

        settings = Settings(_env_file=None)
        assert settings.default_language == "en"
        assert settings.poll_budget_seconds == 42.0

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
