from relay.schemas.assistant import AssistantRun, CompletionResult, RunStatus, ThreadMessage
from relay.schemas.whatsapp import DeliveryReceipt, InboundMessage, SelftestResponse

__all__ = [
    "AssistantRun",
    "CompletionResult",
    "DeliveryReceipt",
    "InboundMessage",
    "RunStatus",
    "SelftestResponse",
    "ThreadMessage",
]
