from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from chat_service.domain.chat import ChatConfig
from chat_service.domain.models import Message
from chat_service.ports.llm import LLMClient, LLMResponse


def _last_user(messages: Sequence[Message]) -> Optional[Message]:
    return next((m for m in reversed(messages) if m.role == "user"), None)


class EchoMockLLM(LLMClient):
    def generate(self, messages: Sequence[Message], *, config: ChatConfig, max_output_tokens: int) -> LLMResponse:
        last_user = _last_user(messages)
        text = f"[mock] Ответ на: {last_user.content if last_user else ''}"
        return LLMResponse(text=text, usage={"input_tokens": 0, "output_tokens": 0})


@dataclass
class ScriptedMockLLM(LLMClient):
    rules: Dict[str, str]

    def generate(self, messages: Sequence[Message], *, config: ChatConfig, max_output_tokens: int) -> LLMResponse:
        last_user = _last_user(messages)
        prompt = (last_user.content if last_user else "").lower()

        for k, v in self.rules.items():
            if k.lower() in prompt:
                return LLMResponse(text=v, usage={"input_tokens": 0, "output_tokens": 0})

        return LLMResponse(text="[mock] Не знаю что сказать.", usage={"input_tokens": 0, "output_tokens": 0})
