from .clock_system import SystemClock
from .llm_mock import EchoMockLLM, ScriptedMockLLM
from .tokens_approx import ApproxTokenCounter
from .repo_json import JsonFileChatRepo
from .repo_memory import InMemoryChatRepo

__all__ = [
    "SystemClock",
    "EchoMockLLM", "ScriptedMockLLM",
    "ApproxTokenCounter",
    "JsonFileChatRepo",
    "InMemoryChatRepo",
]
