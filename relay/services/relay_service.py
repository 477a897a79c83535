"""Inbound WhatsApp message -> assistant answer -> reply pipeline.

Every failure stops here: the sender gets one fixed apology (best effort) and
the error is logged. Nothing propagates back to the webhook response.
"""

from typing import Optional
from urllib.parse import parse_qsl

from relay.config import Settings
from relay.errors import ParseError
from relay.logging_config import LoggerAdapter, get_logger
from relay.schemas.whatsapp import DeliveryReceipt, InboundMessage
from relay.services.escalation_service import (
    build_completion_result,
    format_admin_notification,
    strip_escalation_note,
)
from relay.services.forward_service import InboundForwarder
from relay.services.job_runner import FALLBACK_ANSWER, BoundedJobRunner
from relay.services.result import Result
from relay.services.twilio_service import TwilioMessagingClient

logger = get_logger("relay_service")

MSG_TECHNICAL_PROBLEM = "I ran into a technical problem 😕. Could you send your last message again?"
MSG_SELFTEST = "✅ Selftest: Twilio → WhatsApp OK."

SENDER_FIELD = "From"
BODY_FIELD = "Body"


def parse_form(raw: bytes) -> dict[str, str]:
    """Decode an x-www-form-urlencoded body. First value wins for repeated keys."""
    try:
        text = raw.decode("utf-8")
        pairs = parse_qsl(text, keep_blank_values=True, strict_parsing=False, errors="strict")
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"Invalid form body: {e}") from e

    form: dict[str, str] = {}
    for key, value in pairs:
        form.setdefault(key, value)
    return form


def build_inbound_message(form: dict[str, str]) -> Optional[InboundMessage]:
    """InboundMessage from the Twilio form, or None when From/Body is missing."""
    sender = (form.get(SENDER_FIELD) or "").strip()
    body = (form.get(BODY_FIELD) or "").strip()
    if not sender or not body:
        return None
    metadata = {k: v for k, v in form.items() if k not in (SENDER_FIELD, BODY_FIELD)}
    return InboundMessage(sender=sender, body=body, metadata=metadata)


class RelayService:
    def __init__(
        self,
        settings: Settings,
        runner: BoundedJobRunner,
        messenger: TwilioMessagingClient,
        forwarder: Optional[InboundForwarder] = None,
    ):
        self.settings = settings
        self.runner = runner
        self.messenger = messenger
        self.forwarder = forwarder

    def forward_inbound(self, form: dict[str, str]) -> None:
        if self.forwarder is None:
            return
        try:
            self.forwarder.dispatch(form)
        except Exception as e:
            logger.error(f"Failed to dispatch inbound forward: {e}")

    async def reply(self, message: InboundMessage) -> DeliveryReceipt:
        """Run the assistant on the message and send the answer back.

        Raises JobFailed, JobTimedOut or TransportError; escalation failures do not raise.
        """
        answer = await self.runner.run(message.body)
        result = build_completion_result(
            answer,
            marker=self.settings.escalation_marker,
            max_chars=self.settings.escalation_note_max_chars,
        )

        reply_text = result.answer
        if self.settings.strip_escalation_note and result.escalation_note is not None:
            reply_text = strip_escalation_note(result.answer, self.settings.escalation_marker) or FALLBACK_ANSWER

        receipt = await self.messenger.send(message.sender, reply_text)

        if result.escalation_note is not None:
            await self.notify_admin(result.escalation_note, sender=message.sender)

        return receipt

    async def notify_admin(self, note: str, sender: Optional[str] = None) -> Result[DeliveryReceipt]:
        if not self.settings.admin_whatsapp:
            logger.info("Escalation marker found but ADMIN_WHATSAPP is not configured")
            return Result.failure("ADMIN_WHATSAPP not configured", "config_error")
        return await self.send_best_effort(
            self.settings.admin_whatsapp,
            format_admin_notification(note, sender),
            purpose="escalation",
        )

    async def process_message(self, message: InboundMessage) -> Result[DeliveryReceipt]:
        """Full pipeline for one inbound message. Never raises."""
        log = LoggerAdapter(logger, {"sender": message.sender, "message_sid": message.metadata.get("MessageSid")})
        log.info("Inbound WhatsApp", context={"text": message.body[:160]})

        try:
            receipt = await self.reply(message)
            return Result.success(receipt)
        except Exception as e:
            log.error(f"Relay pipeline failed: {e}", context={"error_type": type(e).__name__}, exc_info=True)
            await self.send_best_effort(message.sender, MSG_TECHNICAL_PROBLEM, purpose="apology")
            return Result.from_exception(e)

    async def send_best_effort(self, to: str, body: str, purpose: str) -> Result[DeliveryReceipt]:
        """Send once; failures are logged and returned, never raised."""
        try:
            receipt = await self.messenger.send(to, body)
        except Exception as e:
            logger.error(
                f"Best-effort send failed: {e}",
                extra={"context": {"purpose": purpose, "to": to}},
            )
            return Result.from_exception(e, "transport_error")
        return Result.success(receipt)

    async def send_selftest(self) -> Result[DeliveryReceipt]:
        if not self.settings.admin_whatsapp:
            return Result.failure("ADMIN_WHATSAPP not configured", "config_error")
        return await self.send_best_effort(self.settings.admin_whatsapp, MSG_SELFTEST, purpose="selftest")

    async def aclose(self) -> None:
        try:
            await self.runner.backend.aclose()
        finally:
            try:
                await self.messenger.aclose()
            finally:
                if self.forwarder is not None:
                    await self.forwarder.aclose()
