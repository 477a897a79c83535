from typing import Optional

from relay.schemas.assistant import CompletionResult

DEFAULT_ESCALATION_MARKER = "[NOTIFY_ADMIN]:"
DEFAULT_NOTE_MAX_CHARS = 1000


def extract_escalation_note(
    answer: str,
    marker: str = DEFAULT_ESCALATION_MARKER,
    max_chars: int = DEFAULT_NOTE_MAX_CHARS,
) -> Optional[str]:
    """Text after the first marker, trimmed and truncated. None when there is no marker."""
    if not marker or marker not in answer:
        return None
    note = answer.split(marker, 1)[1].strip()
    return note[:max_chars]


def strip_escalation_note(answer: str, marker: str = DEFAULT_ESCALATION_MARKER) -> str:
    """Remove the marker and everything after it."""
    if not marker or marker not in answer:
        return answer
    return answer.split(marker, 1)[0].strip()


def build_completion_result(
    answer: str,
    marker: str = DEFAULT_ESCALATION_MARKER,
    max_chars: int = DEFAULT_NOTE_MAX_CHARS,
) -> CompletionResult:
    return CompletionResult(answer=answer, escalation_note=extract_escalation_note(answer, marker, max_chars))


def format_admin_notification(note: str, sender: Optional[str] = None) -> str:
    """Operator-facing text for an escalation."""
    text = "🔔 Assistant escalation"
    if sender:
        text += f" ({sender})"
    return f"{text}:\n{note}"
