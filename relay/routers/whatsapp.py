from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse

from relay.config import Settings
from relay.dependencies import get_app_settings, get_relay_service
from relay.errors import ConfigError, ParseError
from relay.logging_config import get_logger
from relay.services.relay_service import RelayService, build_inbound_message, parse_form

logger = get_logger("whatsapp_webhook")

router = APIRouter()

WEBHOOK_PATHS = ("/api/whatsapp", "/twilio/whatsapp")
NON_POST_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _ack() -> PlainTextResponse:
    # always 200: Twilio retries any other status
    return PlainTextResponse("OK", status_code=200)


async def handle_whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    service: RelayService = Depends(get_relay_service),
    settings: Settings = Depends(get_app_settings),
) -> PlainTextResponse:
    """
    Handle Twilio WhatsApp webhook (form-encoded From/Body):
    - ack_policy=before: answer 200 now, run assistant + reply as a background task
    - ack_policy=after: run assistant + reply, then answer 200
    """
    try:
        settings.require()
    except ConfigError as e:
        logger.error(f"WhatsApp webhook not configured: {e}", extra={"context": {"missing": e.missing}})
        return _ack()

    try:
        form = parse_form(await request.body())
    except ParseError as e:
        logger.warning(f"WhatsApp webhook body rejected: {e}")
        return _ack()

    service.forward_inbound(form)

    message = build_inbound_message(form)
    if message is None:
        logger.info(
            "No From or Body in webhook; nothing to do",
            extra={"context": {"form_keys": list(form.keys())[:20]}},
        )
        return _ack()

    if settings.ack_policy == "after":
        await service.process_message(message)
    else:
        background_tasks.add_task(service.process_message, message)

    return _ack()


async def handle_whatsapp_probe() -> PlainTextResponse:
    """Non-POST requests (health checks, browser visits) are acknowledged without side effects."""
    return _ack()


for _path in WEBHOOK_PATHS:
    router.add_api_route(_path, handle_whatsapp_webhook, methods=["POST"], response_class=PlainTextResponse)
    router.add_api_route(_path, handle_whatsapp_probe, methods=NON_POST_METHODS, response_class=PlainTextResponse)
