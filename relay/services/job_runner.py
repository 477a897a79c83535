"""Bounded runner for assistant completion jobs.

One call to ``run`` owns one fresh thread and one run: create thread, append
the user text, start the run, poll until a terminal status or the wall-clock
deadline, then read the newest assistant message. The remote run is not
cancelled on timeout; its eventual result is simply never read.

Every backend call shares one budget of ``deadline + one poll interval``
measured from the start of ``run``, so a stalled request cannot hold the
caller past it.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

from relay.errors import JobFailed, JobTimedOut
from relay.logging_config import get_logger
from relay.schemas.assistant import ThreadMessage
from relay.services.llm.base import AssistantBackend
from relay.services.run_state import RunState, next_state

logger = get_logger("job_runner")

T = TypeVar("T")

FALLBACK_ANSWER = "Sorry, I couldn't answer right now. Could you try again?"

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_DEADLINE_SECONDS = 12.0
DEFAULT_MESSAGES_PAGE_SIZE = 10


def extract_answer(messages: list[ThreadMessage], fallback: str = FALLBACK_ANSWER) -> str:
    """Join the text segments of the first assistant message (list is newest first).

    Falls back when there is no assistant message or it carries no text.
    """
    assistant_msg = next((m for m in messages if m.role == "assistant"), None)
    if assistant_msg is None:
        return fallback
    parts = [c.text.value for c in assistant_msg.content if c.type == "text" and c.text is not None]
    return "\n".join(parts).strip() or fallback


class BoundedJobRunner:
    def __init__(
        self,
        backend: AssistantBackend,
        assistant_id: str,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        messages_page_size: int = DEFAULT_MESSAGES_PAGE_SIZE,
        clock: Callable[[], float] = time.monotonic,
        sleep_func: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.assistant_id = assistant_id
        self.poll_interval_seconds = poll_interval_seconds
        self.deadline_seconds = deadline_seconds
        self.messages_page_size = messages_page_size
        self.clock = clock
        self.sleep_func = sleep_func

    async def _bounded(self, call: Awaitable[T], started: float, last_status: Optional[str] = None) -> T:
        """Await a backend call within what is left of the run budget."""
        budget = self.deadline_seconds + self.poll_interval_seconds - (self.clock() - started)
        try:
            return await asyncio.wait_for(call, timeout=budget)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Assistant backend call exceeded the run deadline",
                extra={"context": {"status": last_status, "elapsed_seconds": round(self.clock() - started, 3)}},
            )
            raise JobTimedOut(self.deadline_seconds, last_status) from e

    async def run(self, text: str) -> str:
        """Submit text as a new conversation and return the assistant's answer.

        Raises:
            JobFailed: run ended as failed/expired/cancelled/incomplete
            JobTimedOut: no terminal status before the deadline, or a backend call stalled past it
            TransportError: a backend call was rejected or did not complete
        """
        started = self.clock()

        thread = await self._bounded(self.backend.create_thread(), started)
        await self._bounded(self.backend.add_message(thread.id, text), started)
        run = await self._bounded(self.backend.create_run(thread.id, self.assistant_id), started)
        logger.info(
            "Assistant run submitted",
            extra={"context": {"thread_id": thread.id, "run_id": run.id, "status": run.status.value}},
        )

        state = RunState.SUBMITTED
        polls = 0
        while True:
            elapsed = self.clock() - started
            state = next_state(state, run.status, elapsed, self.deadline_seconds)

            if state == RunState.COMPLETED:
                break
            if state == RunState.FAILED:
                detail = run.error_detail()
                logger.warning(
                    "Assistant run ended without completing",
                    extra={"context": {"run_id": run.id, "status": run.status.value, "detail": detail}},
                )
                raise JobFailed(run.status.value, detail)
            if state == RunState.TIMED_OUT:
                logger.warning(
                    "Assistant run deadline exceeded",
                    extra={
                        "context": {
                            "run_id": run.id,
                            "status": run.status.value,
                            "elapsed_seconds": round(elapsed, 3),
                            "polls": polls,
                        }
                    },
                )
                raise JobTimedOut(self.deadline_seconds, run.status.value)

            # the last poll lands on the deadline, not after it
            await self.sleep_func(min(self.poll_interval_seconds, self.deadline_seconds - elapsed))
            run = await self._bounded(self.backend.retrieve_run(thread.id, run.id), started, run.status.value)
            polls += 1

        messages = await self._bounded(
            self.backend.list_messages(thread.id, limit=self.messages_page_size, order="desc"),
            started,
            run.status.value,
        )
        answer = extract_answer(messages)
        logger.info(
            f"Assistant answer: {answer[:300]}",
            extra={"context": {"run_id": run.id, "polls": polls, "elapsed_seconds": round(self.clock() - started, 3)}},
        )
        return answer
