from typing import Optional

import httpx

from relay.errors import TransportError
from relay.logging_config import get_logger
from relay.schemas.whatsapp import DeliveryReceipt

logger = get_logger("twilio_service")

WHATSAPP_PREFIX = "whatsapp:"


def normalize_address(value: str) -> str:
    """Return the address with the WhatsApp channel prefix exactly once."""
    address = (value or "").strip()
    if not address:
        raise ValueError("Empty WhatsApp address")
    if address.startswith(WHATSAPP_PREFIX):
        return address
    return f"{WHATSAPP_PREFIX}{address}"


class TwilioMessagingClient:
    """Sends WhatsApp messages through the Twilio Messages REST API."""

    BASE_URL = "https://api.twilio.com/2010-04-01"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"

    async def send(self, to: str, body: str) -> DeliveryReceipt:
        """Send a WhatsApp message. Raises TransportError if Twilio rejects it."""
        try:
            from_addr = normalize_address(self.from_number)
            to_addr = normalize_address(to)
        except ValueError as e:
            raise TransportError(f"Invalid WhatsApp address: {e}") from e

        logger.info(
            "Twilio send",
            extra={"context": {"from": from_addr, "to": to_addr, "preview": (body or "")[:160]}},
        )

        try:
            response = await self._client.post(
                self.messages_url,
                auth=(self.account_sid, self.auth_token),
                data={"From": from_addr, "To": to_addr, "Body": body},
            )
        except httpx.HTTPError as e:
            logger.error(f"Twilio transport error: {e}")
            raise TransportError("Twilio request failed", detail=str(e)) from e

        if response.status_code >= 400:
            detail = _error_message(response)
            logger.error(f"Twilio error: {response.status_code} - {detail}")
            raise TransportError(
                f"Twilio API error: {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )

        data = response.json()
        receipt = DeliveryReceipt(
            sid=data.get("sid", ""),
            status=data.get("status"),
            to=data.get("to") or to_addr,
            from_=data.get("from") or from_addr,
        )
        logger.info(f"Twilio OK, SID: {receipt.sid}")
        return receipt

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(data, dict) and data.get("message"):
        code = data.get("code")
        return f"{code}: {data['message']}" if code else data["message"]
    return response.text[:500]
