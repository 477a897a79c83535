"""Error kinds raised inside the relay pipeline.

None of these ever reach Twilio as a non-200 response: the receiver catches
them, logs them and, when the sender is known, sends the fixed apology.
"""

from typing import Optional


class RelayError(Exception):
    """Base class for relay failures."""


class ConfigError(RelayError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required settings: {', '.join(missing)}")


class ParseError(RelayError):
    """Inbound webhook body could not be decoded."""


class JobFailed(RelayError):
    def __init__(self, status: str, detail: Optional[str] = None):
        self.status = status
        self.detail = detail
        message = f"Run status: {status}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class JobTimedOut(RelayError):
    def __init__(self, deadline_seconds: float, last_status: Optional[str] = None):
        self.deadline_seconds = deadline_seconds
        self.last_status = last_status
        super().__init__(f"Assistant run deadline exceeded ({deadline_seconds:g}s, last status: {last_status})")


class TransportError(RelayError):
    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)
