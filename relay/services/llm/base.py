from abc import ABC, abstractmethod

from relay.schemas.assistant import AssistantRun, AssistantThread, ThreadMessage


class AssistantBackend(ABC):
    """Abstract base class for stateful assistant backends (thread + run model)."""

    @abstractmethod
    async def create_thread(self) -> AssistantThread:
        """Create an empty conversation thread."""

    @abstractmethod
    async def add_message(self, thread_id: str, content: str) -> ThreadMessage:
        """Append a user message to the thread."""

    @abstractmethod
    async def create_run(self, thread_id: str, assistant_id: str) -> AssistantRun:
        """Start a completion run on the thread."""

    @abstractmethod
    async def retrieve_run(self, thread_id: str, run_id: str) -> AssistantRun:
        """Fetch the current status of a run."""

    @abstractmethod
    async def list_messages(self, thread_id: str, limit: int = 10, order: str = "desc") -> list[ThreadMessage]:
        """List thread messages, newest first by default."""

    async def aclose(self) -> None:
        return None
