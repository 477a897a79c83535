from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    """One Twilio WhatsApp notification: sender, text and untouched extra fields."""

    model_config = ConfigDict(frozen=True)

    sender: str
    body: str
    metadata: dict[str, str] = Field(default_factory=dict)


class DeliveryReceipt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sid: str
    status: Optional[str] = None
    to: str
    from_: str = Field(alias="from")


class SelftestResponse(BaseModel):
    ok: bool
    sid: Optional[str] = None
    error: Optional[str] = None
