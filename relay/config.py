from typing import Literal, Optional

from pydantic_settings import BaseSettings

from relay.errors import ConfigError

REQUIRED_SETTINGS = {
    "openai_api_key": "OPENAI_API_KEY",
    "openai_assistant_id": "OPENAI_ASSISTANT_ID",
    "twilio_account_sid": "TWILIO_ACCOUNT_SID",
    "twilio_auth_token": "TWILIO_AUTH_TOKEN",
    "twilio_whatsapp_number": "TWILIO_WHATSAPP_NUMBER",
}


class Settings(BaseSettings):
    openai_api_key: str = ""
    openai_assistant_id: str = ""
    openai_base_url: str = "https://api.openai.com/v1"

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_whatsapp_number: str = ""
    twilio_api_base_url: str = "https://api.twilio.com/2010-04-01"

    admin_whatsapp: Optional[str] = None
    google_apps_script_url: Optional[str] = None

    port: int = 3000
    log_level: str = "INFO"
    http_timeout_seconds: float = 30.0

    # before: answer Twilio right after parsing; after: answer once the reply is sent
    ack_policy: Literal["before", "after"] = "before"

    run_poll_interval_seconds: float = 1.0
    run_deadline_seconds: float = 12.0
    messages_page_size: int = 10

    escalation_marker: str = "[NOTIFY_ADMIN]:"
    escalation_note_max_chars: int = 1000
    strip_escalation_note: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"

    def missing_required(self) -> list[str]:
        """Return env names of required settings that are empty."""
        return [env_name for field, env_name in REQUIRED_SETTINGS.items() if not getattr(self, field)]

    def require(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ConfigError(missing)


def get_settings() -> Settings:
    return Settings()
