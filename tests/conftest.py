from typing import Optional
from urllib.parse import parse_qs

import httpx
import pytest

from relay.config import Settings
from relay.errors import TransportError
from relay.schemas.assistant import AssistantRun, AssistantThread, MessageContent, RunError, TextValue, ThreadMessage
from relay.schemas.whatsapp import DeliveryReceipt
from relay.services.job_runner import BoundedJobRunner
from relay.services.llm.base import AssistantBackend
from relay.services.relay_service import RelayService
from relay.services.twilio_service import TwilioMessagingClient, normalize_address

TWILIO_NUMBER = "+14155238886"
ADMIN_NUMBER = "+15550000001"


def assistant_message(*texts: str, role: str = "assistant", msg_id: str = "msg_1") -> ThreadMessage:
    return ThreadMessage(
        id=msg_id,
        role=role,
        content=[MessageContent(type="text", text=TextValue(value=t)) for t in texts],
    )


class FakeClock:
    """Monotonic clock that only moves when the runner sleeps."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeBackend(AssistantBackend):
    """Assistant backend double. Each create/retrieve consumes the next status; the last one repeats."""

    def __init__(
        self,
        statuses=("completed",),
        messages: Optional[list[ThreadMessage]] = None,
        last_error: Optional[RunError] = None,
    ):
        self.statuses = list(statuses)
        self.messages = messages if messages is not None else []
        self.last_error = last_error
        self.calls: list[tuple] = []
        self.closed = False

    def _next_run(self, thread_id: str) -> AssistantRun:
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return AssistantRun(id="run_1", thread_id=thread_id, status=status, last_error=self.last_error)

    async def create_thread(self) -> AssistantThread:
        self.calls.append(("create_thread",))
        return AssistantThread(id="thread_1")

    async def add_message(self, thread_id: str, content: str) -> ThreadMessage:
        self.calls.append(("add_message", thread_id, content))
        return assistant_message(content, role="user", msg_id="msg_user")

    async def create_run(self, thread_id: str, assistant_id: str) -> AssistantRun:
        self.calls.append(("create_run", thread_id, assistant_id))
        return self._next_run(thread_id)

    async def retrieve_run(self, thread_id: str, run_id: str) -> AssistantRun:
        self.calls.append(("retrieve_run", thread_id, run_id))
        return self._next_run(thread_id)

    async def list_messages(self, thread_id: str, limit: int = 10, order: str = "desc") -> list[ThreadMessage]:
        self.calls.append(("list_messages", thread_id, limit, order))
        return self.messages

    async def aclose(self) -> None:
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class FakeMessenger:
    """Records sends; raises TransportError for recipients listed in fail_for (or all, with fail_all)."""

    def __init__(self, fail_for: tuple = (), fail_all: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.attempts: list[tuple[str, str]] = []
        self.fail_for = {normalize_address(a) for a in fail_for}
        self.fail_all = fail_all
        self.closed = False

    async def send(self, to: str, body: str) -> DeliveryReceipt:
        to_addr = normalize_address(to)
        self.attempts.append((to_addr, body))
        if self.fail_all or to_addr in self.fail_for:
            raise TransportError("Twilio API error: 400", status_code=400, detail="21211: Invalid 'To' Phone Number")
        self.sent.append((to_addr, body))
        return DeliveryReceipt(sid=f"SM{len(self.sent)}", status="queued", to=to_addr, from_=f"whatsapp:{TWILIO_NUMBER}")

    async def aclose(self) -> None:
        self.closed = True


class TwilioRecorder:
    """httpx MockTransport handler standing in for the Twilio Messages API."""

    def __init__(self, status_code: int = 201):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        if self.status_code >= 400:
            return httpx.Response(
                self.status_code,
                json={"code": 21211, "message": "Invalid 'To' Phone Number", "status": self.status_code},
            )
        return httpx.Response(
            self.status_code,
            json={
                "sid": f"SM{len(self.requests):032d}",
                "status": "queued",
                "to": form.get("To"),
                "from": form.get("From"),
                "body": form.get("Body"),
            },
        )

    @property
    def sent(self) -> list[dict[str, str]]:
        return [{k: v[0] for k, v in parse_qs(r.content.decode()).items()} for r in self.requests]


def make_settings(**overrides) -> Settings:
    values = {
        "openai_api_key": "sk-test",
        "openai_assistant_id": "asst_test",
        "twilio_account_sid": "ACtest",
        "twilio_auth_token": "token",
        "twilio_whatsapp_number": TWILIO_NUMBER,
        "admin_whatsapp": None,
        "google_apps_script_url": None,
        "ack_policy": "before",
        "run_poll_interval_seconds": 1.0,
        "run_deadline_seconds": 12.0,
        "strip_escalation_note": False,
    }
    values.update(overrides)
    return Settings(**values)


def make_service(
    settings: Settings,
    backend: AssistantBackend,
    messenger,
    clock: Optional[FakeClock] = None,
    forwarder=None,
) -> RelayService:
    clock = clock or FakeClock()
    runner = BoundedJobRunner(
        backend,
        settings.openai_assistant_id,
        poll_interval_seconds=settings.run_poll_interval_seconds,
        deadline_seconds=settings.run_deadline_seconds,
        clock=clock,
        sleep_func=clock.sleep,
    )
    return RelayService(settings, runner, messenger, forwarder)


def make_twilio_client(recorder: TwilioRecorder) -> TwilioMessagingClient:
    return TwilioMessagingClient(
        account_sid="ACtest",
        auth_token="token",
        from_number=TWILIO_NUMBER,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(recorder)),
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def messenger():
    return FakeMessenger()
