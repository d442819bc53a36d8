from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Dict, Any, Optional

import requests

from chat_service.domain.chat import ChatConfig
from chat_service.domain.models import Message
from chat_service.ports.llm import LLMClient, LLMResponse


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def _options(config: ChatConfig, max_output_tokens: int) -> Dict[str, Any]:
    opts: Dict[str, Any] = {
        "temperature": float(config.temperature),
        "top_p": float(config.top_p),
        "presence_penalty": float(config.presence_penalty),
        "frequency_penalty": float(config.frequency_penalty),
        "num_predict": int(max_output_tokens),
    }
    if config.stop:
        opts["stop"] = list(config.stop)
    return opts


@dataclass
class OllamaLLMClient(LLMClient):
    """
    Ollama /api/chat.
    model=None -> берём config.model.name из чата.
    """
    base_url: str = "http://127.0.0.1:11434"
    model: Optional[str] = None
    timeout_s: int = 120

    session: Optional[requests.Session] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.base_url = _strip_trailing_slash(self.base_url)
        if self.session is None:
            self.session = requests.Session()

    def generate(self, messages: Sequence[Message], *, config: ChatConfig, max_output_tokens: int) -> LLMResponse:
        assert self.session is not None

        payload: Dict[str, Any] = {
            "model": self.model or config.model.name,
            "messages": [{"role": m.role, "content": (m.content or "")} for m in messages],
            "stream": False,
            "options": _options(config, max_output_tokens),
        }

        r = self.session.post(f"{self.base_url}/api/chat", json=payload, timeout=self.timeout_s)
        r.raise_for_status()
        data = r.json() if r.content else {}

        text = ""
        msg = data.get("message")
        if isinstance(msg, dict):
            text = (msg.get("content") or "").strip()

        if not text:
            text = (data.get("response") or data.get("content") or "").strip()

        usage = {
            "input_tokens": int(data.get("prompt_eval_count") or 0),
            "output_tokens": int(data.get("eval_count") or 0),
        }

        return LLMResponse(text=text, usage=usage)
