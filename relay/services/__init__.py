from relay.services.escalation_service import (
    build_completion_result,
    extract_escalation_note,
    format_admin_notification,
    strip_escalation_note,
)
from relay.services.job_runner import FALLBACK_ANSWER, BoundedJobRunner, extract_answer
from relay.services.run_state import (
    InvalidTransitionError,
    RunState,
    can_transition,
    next_state,
    transition,
)
from relay.services.twilio_service import TwilioMessagingClient, normalize_address
