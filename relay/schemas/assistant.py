from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        RunStatus.COMPLETED,
        RunStatus.FAILED,
        RunStatus.EXPIRED,
        RunStatus.CANCELLED,
        RunStatus.INCOMPLETE,
    }
)


class RunError(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None


class IncompleteDetails(BaseModel):
    reason: Optional[str] = None


class AssistantThread(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str


class AssistantRun(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    thread_id: str
    status: RunStatus
    last_error: Optional[RunError] = None
    incomplete_details: Optional[IncompleteDetails] = None

    def error_detail(self) -> Optional[str]:
        """Backend-provided reason for a failed or incomplete run, if any."""
        if self.last_error and (self.last_error.message or self.last_error.code):
            if self.last_error.code and self.last_error.message:
                return f"{self.last_error.code}: {self.last_error.message}"
            return self.last_error.message or self.last_error.code
        if self.incomplete_details and self.incomplete_details.reason:
            return self.incomplete_details.reason
        return None


class TextValue(BaseModel):
    value: str = ""


class MessageContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    text: Optional[TextValue] = None


class ThreadMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    role: str  # user, assistant
    content: list[MessageContent] = []


class CompletionResult(BaseModel):
    answer: str
    escalation_note: Optional[str] = None
