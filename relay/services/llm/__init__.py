from relay.services.llm.base import AssistantBackend
from relay.services.llm.openai_assistants import OpenAIAssistantsClient

__all__ = ["AssistantBackend", "OpenAIAssistantsClient"]
