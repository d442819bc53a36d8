from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict

from chat_service.app.settings import AppSettings
from chat_service.ports.llm import LLMClient
from chat_service.ports.repo import ChatRepo
from chat_service.ports.tokens import TokenCounter
from chat_service.use_cases.chat_session import ChatSession


@dataclass(frozen=True)
class ChatBundle:
    session: ChatSession
    repo: ChatRepo
    counter: TokenCounter
    llm: LLMClient


# -----------------------
# Internal shared cache
# -----------------------
_cache_lock = Lock()
_shared: Dict[AppSettings, ChatBundle] = {}


def _build_counter(settings: AppSettings) -> TokenCounter:
    if settings.backend.tokenizer_backend == "tiktoken":
        from chat_service.adapters.tokens_tiktoken import TiktokenTokenCounter
        return TiktokenTokenCounter()

    from chat_service.adapters.tokens_approx import ApproxTokenCounter
    return ApproxTokenCounter()


def _build_llm(settings: AppSettings) -> LLMClient:
    if settings.backend.llm_backend == "ollama":
        from chat_service.adapters.llm_ollama import OllamaLLMClient
        return OllamaLLMClient(
            base_url=settings.backend.ollama_url,
            model=settings.backend.ollama_model or None,
        )

    from chat_service.adapters.llm_mock import EchoMockLLM
    return EchoMockLLM()


def _build_repo(settings: AppSettings) -> ChatRepo:
    if settings.backend.repo_backend == "memory":
        from chat_service.adapters.repo_memory import InMemoryChatRepo
        return InMemoryChatRepo()

    from chat_service.adapters.repo_json import JsonFileChatRepo
    return JsonFileChatRepo(settings.data_store_dir)


def _build(settings: AppSettings) -> ChatBundle:
    counter = _build_counter(settings)
    llm = _build_llm(settings)
    repo = _build_repo(settings)

    session = ChatSession(
        repo=repo,
        llm=llm,
        counter=counter,
        default_config=settings.chat.build_config(),
        system_prompt=settings.chat.system_prompt,
    )
    return ChatBundle(session=session, repo=repo, counter=counter, llm=llm)


def build_bundle(settings: AppSettings) -> ChatBundle:
    """Один bundle на набор настроек: локи чатов и in-memory репозиторий общие для всех вызывающих."""
    with _cache_lock:
        bundle = _shared.get(settings)
        if bundle is None:
            bundle = _build(settings)
            _shared[settings] = bundle
        return bundle


def reset_cache() -> None:
    with _cache_lock:
        _shared.clear()
