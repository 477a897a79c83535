import pytest

from relay.config import Settings
from relay.errors import ConfigError
from tests.conftest import make_settings


class TestSettingsFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("RUN_DEADLINE_SECONDS", "45")
        monkeypatch.setenv("RUN_POLL_INTERVAL_SECONDS", "1.2")
        monkeypatch.setenv("ACK_POLICY", "after")
        monkeypatch.setenv("STRIP_ESCALATION_NOTE", "true")

        settings = Settings(_env_file=None)

        assert settings.openai_api_key == "sk-env"
        assert settings.run_deadline_seconds == 45.0
        assert settings.run_poll_interval_seconds == 1.2
        assert settings.ack_policy == "after"
        assert settings.strip_escalation_note is True

    def test_defaults(self, monkeypatch):
        for name in ("ACK_POLICY", "RUN_DEADLINE_SECONDS", "RUN_POLL_INTERVAL_SECONDS", "ESCALATION_MARKER", "PORT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.ack_policy == "before"
        assert settings.run_deadline_seconds == 12.0
        assert settings.run_poll_interval_seconds == 1.0
        assert settings.escalation_marker == "[NOTIFY_ADMIN]:"
        assert settings.port == 3000

    def test_invalid_ack_policy_rejected(self, monkeypatch):
        monkeypatch.setenv("ACK_POLICY", "sometimes")
        with pytest.raises(Exception):
            Settings(_env_file=None)


class TestRequire:
    def test_complete_settings_pass(self):
        settings = make_settings()
        assert settings.missing_required() == []
        settings.require()

    def test_lists_missing_env_names(self):
        settings = make_settings(openai_assistant_id="", twilio_whatsapp_number="")
        assert settings.missing_required() == ["OPENAI_ASSISTANT_ID", "TWILIO_WHATSAPP_NUMBER"]

    def test_require_raises_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            make_settings(openai_api_key="").require()
        assert exc_info.value.missing == ["OPENAI_API_KEY"]
        assert "OPENAI_API_KEY" in str(exc_info.value)
