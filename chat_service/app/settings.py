from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Tuple

from chat_service.domain.chat import ChatConfig
from chat_service.domain.models import Model

# контекстные окна известных моделей
KNOWN_MODELS: Dict[str, int] = {
    "gpt-3.5-turbo": 4096,
    "gpt-3.5-turbo-16k": 16384,
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-1106-preview": 128000,
    "gpt-4-vision-preview": 128000,
    "gpt-4o": 128000,
    "llama3.1:8b": 131072,
}


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return tuple(s.strip() for s in v.split(",") if s.strip())


def _env_choice(name: str, default: str, allowed: set[str]) -> str:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    val = v.strip().lower()
    return val if val in allowed else default


@dataclass(frozen=True)
class ChatSettings:
    system_prompt: str = "You are a helpful assistant."

    model: str = "gpt-3.5-turbo"
    model_max_tokens: int = 0  # 0 -> KNOWN_MODELS или max_tokens
    max_tokens: int = 4096     # бюджет чата

    temperature: float = 1.0
    top_p: float = 1.0
    n: int = 1
    stop: Tuple[str, ...] = ()
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0

    def build_model(self) -> Model:
        capacity = self.model_max_tokens or KNOWN_MODELS.get(self.model, self.max_tokens)
        return Model(name=self.model, max_tokens=capacity)

    def build_config(self) -> ChatConfig:
        return ChatConfig(
            model=self.build_model(),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            n=self.n,
            stop=self.stop,
            presence_penalty=self.presence_penalty,
            frequency_penalty=self.frequency_penalty,
        )


@dataclass(frozen=True)
class BackendSettings:
    tokenizer_backend: str = "approx"  # approx | tiktoken
    llm_backend: str = "mock"          # mock | ollama
    repo_backend: str = "json"         # json | memory

    ollama_url: str = "http://127.0.0.1:11434"
    ollama_model: str = ""             # пусто -> имя модели чата


@dataclass(frozen=True)
class AppSettings:
    data_store_dir: str = "./data"
    chat: ChatSettings = ChatSettings()
    backend: BackendSettings = BackendSettings()

    @staticmethod
    def from_env() -> "AppSettings":
        chat = ChatSettings(
            system_prompt=_env_str("CS_SYSTEM_PROMPT", ChatSettings.system_prompt),
            model=_env_str("CS_MODEL", ChatSettings.model),
            model_max_tokens=_env_int("CS_MODEL_MAX_TOKENS", ChatSettings.model_max_tokens),
            max_tokens=_env_int("CS_MAX_TOKENS", ChatSettings.max_tokens),

            temperature=_env_float("CS_TEMPERATURE", ChatSettings.temperature),
            top_p=_env_float("CS_TOP_P", ChatSettings.top_p),
            n=_env_int("CS_N", ChatSettings.n),
            stop=_env_list("CS_STOP", ChatSettings.stop),
            presence_penalty=_env_float("CS_PRESENCE_PENALTY", ChatSettings.presence_penalty),
            frequency_penalty=_env_float("CS_FREQUENCY_PENALTY", ChatSettings.frequency_penalty),
        )

        backend = BackendSettings(
            tokenizer_backend=_env_choice("CS_TOKENIZER", BackendSettings.tokenizer_backend, {"approx", "tiktoken"}),
            llm_backend=_env_choice("CS_LLM", BackendSettings.llm_backend, {"mock", "ollama"}),
            repo_backend=_env_choice("CS_REPO", BackendSettings.repo_backend, {"json", "memory"}),
            ollama_url=_env_str("CS_OLLAMA_URL", BackendSettings.ollama_url),
            ollama_model=_env_str("CS_OLLAMA_MODEL", BackendSettings.ollama_model),
        )

        return AppSettings(
            data_store_dir=_env_str("CS_DATA_STORE", "./data"),
            chat=chat,
            backend=backend,
        )
