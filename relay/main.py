"""
FastAPI application entry point.

Clients (OpenAI Assistants, Twilio, inbound forwarder) are built once per
process in create_app and handed to the routes through app.state.

Run: uvicorn relay.main:app --host 0.0.0.0 --port 3000
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from relay import __version__
from relay.config import Settings, get_settings
from relay.logging_config import get_logger, setup_logging
from relay.routers import selftest, whatsapp
from relay.services.forward_service import InboundForwarder
from relay.services.job_runner import BoundedJobRunner
from relay.services.llm import OpenAIAssistantsClient
from relay.services.relay_service import RelayService
from relay.services.twilio_service import TwilioMessagingClient

logger = get_logger("main")


def build_relay_service(settings: Settings) -> RelayService:
    backend = OpenAIAssistantsClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
    runner = BoundedJobRunner(
        backend,
        settings.openai_assistant_id,
        poll_interval_seconds=settings.run_poll_interval_seconds,
        deadline_seconds=settings.run_deadline_seconds,
        messages_page_size=settings.messages_page_size,
    )
    messenger = TwilioMessagingClient(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_whatsapp_number,
        base_url=settings.twilio_api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
    forwarder = None
    if settings.google_apps_script_url:
        forwarder = InboundForwarder(settings.google_apps_script_url)
    return RelayService(settings, runner, messenger, forwarder)


def create_app(settings: Optional[Settings] = None, relay_service: Optional[RelayService] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = settings.missing_required()
        logger.info(
            "Relay starting up",
            extra={
                "context": {
                    "ack_policy": settings.ack_policy,
                    "run_deadline_seconds": settings.run_deadline_seconds,
                    "run_poll_interval_seconds": settings.run_poll_interval_seconds,
                    "admin_configured": bool(settings.admin_whatsapp),
                    "forward_configured": bool(settings.google_apps_script_url),
                }
            },
        )
        if missing:
            logger.warning(f"Missing required environment variables: {', '.join(missing)}")

        yield

        await app.state.relay_service.aclose()
        logger.info("Relay shutting down")

    app = FastAPI(
        title="Relay API",
        description="Twilio WhatsApp webhook relay to the OpenAI Assistants API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay_service = relay_service or build_relay_service(settings)

    app.include_router(whatsapp.router)
    app.include_router(selftest.router)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Relay webhook OK"

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
