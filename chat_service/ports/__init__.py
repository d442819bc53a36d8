from .clock import Clock
from .llm import LLMClient, LLMResponse, LLMUsage
from .repo import ChatRepo
from .tokens import TokenCounter

__all__ = [
    "Clock",
    "LLMClient",
    "LLMResponse",
    "LLMUsage",
    "ChatRepo",
    "TokenCounter",
]
