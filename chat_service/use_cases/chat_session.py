from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Iterator, List, Optional, Tuple
from uuid import uuid4

from chat_service.adapters.clock_system import SystemClock
from chat_service.domain.chat import Chat, ChatConfig
from chat_service.domain.models import Message
from chat_service.ports.clock import Clock
from chat_service.ports.llm import LLMClient
from chat_service.ports.repo import ChatRepo
from chat_service.ports.tokens import TokenCounter

log = logging.getLogger("chat_service")


class ChatNotFound(LookupError):
    def __init__(self, chat_id: str) -> None:
        super().__init__(f"chat {chat_id} not found")
        self.chat_id = chat_id


def _new_id() -> str:
    return uuid4().hex


def _event(name: str, **fields: Any) -> None:
    log.info(json.dumps({"event": name, **fields}, ensure_ascii=False))


def _admission(chat: Chat, msg: Message, admitted: bool) -> Dict[str, Any]:
    if not admitted:
        _event(
            "message_erased",
            chat_id=chat.id,
            message_id=msg.id,
            role=msg.role,
            tokens=msg.tokens,
            token_usage=chat.token_usage,
            max_tokens=chat.config.max_tokens,
        )
    return {"id": msg.id, "tokens": msg.tokens, "admitted": admitted}


@dataclass
class ChatSession:
    """
    Сценарии поверх Chat: старт, ход пользователя + ответ модели, завершение.
    Доступ к одному чату сериализуется локом на chat_id.
    """

    repo: ChatRepo
    llm: LLMClient
    counter: TokenCounter
    default_config: ChatConfig
    system_prompt: str = "You are a helpful assistant."
    clock: Clock = field(default_factory=SystemClock)

    _locks: Dict[str, Lock] = field(default_factory=dict, init=False, repr=False)
    _locks_guard: Lock = field(default_factory=Lock, init=False, repr=False)

    def _lock(self, chat_id: str) -> Lock:
        with self._locks_guard:
            lock = self._locks.get(chat_id)
            if lock is None:
                lock = Lock()
                self._locks[chat_id] = lock
            return lock

    @contextmanager
    def _locked(self, chat_id: str) -> Iterator[None]:
        """Лок на чат. Для несуществующего чата запись о локе не остаётся."""
        lock = self._lock(chat_id)
        with lock:
            try:
                yield
            except ChatNotFound:
                with self._locks_guard:
                    if self._locks.get(chat_id) is lock:
                        del self._locks[chat_id]
                raise

    def _load(self, chat_id: str) -> Chat:
        chat = self.repo.get(chat_id)
        if chat is None:
            raise ChatNotFound(chat_id)
        return chat

    def _message(self, role: str, content: str, config: ChatConfig) -> Message:
        return Message.create(
            role,
            content,
            model=config.model,
            counter=self.counter,
            created_at=self.clock.now(),
        )

    def start(
        self,
        user_id: str,
        *,
        system_prompt: Optional[str] = None,
        config: Optional[ChatConfig] = None,
    ) -> Chat:
        cfg = config or self.default_config
        sys_msg = self._message("system", system_prompt or self.system_prompt, cfg)
        sys_msg.validate(self.clock)

        chat = Chat(id=_new_id(), user_id=user_id, initial_system_message=sys_msg, config=cfg)
        self.repo.save(chat)

        _event("chat_started", chat_id=chat.id, user_id=user_id, model=cfg.model.name, max_tokens=cfg.max_tokens)
        return chat

    def get(self, chat_id: str) -> Chat:
        return self._load(chat_id)

    def history(self, chat_id: str) -> List[Message]:
        return self._load(chat_id).get_messages()

    def end(self, chat_id: str) -> Chat:
        with self._locked(chat_id):
            chat = self._load(chat_id)
            if not chat.is_ended:
                chat.end()
                self.repo.save(chat)
                _event("chat_ended", chat_id=chat.id, messages=chat.count_messages(), token_usage=chat.token_usage)
            return chat

    def send(self, chat_id: str, text: str) -> Tuple[Optional[str], Dict[str, Any]]:
        """
        Ход пользователя. Возвращает (ответ модели | None, meta).
        None: сообщение пользователя не влезло в бюджет, либо на ответ не осталось токенов.
        """
        with self._locked(chat_id):
            chat = self._load(chat_id)
            cfg = chat.config

            user_msg = self._message("user", text, cfg)
            user_msg.validate(self.clock)

            admitted = chat.add_message(user_msg)

            meta: Dict[str, Any] = {
                "chat_id": chat.id,
                "user": _admission(chat, user_msg, admitted),
                "assistant": None,
            }

            reply: Optional[str] = None
            if admitted and chat.remaining_tokens > 0:
                context = [chat.initial_system_message] + chat.get_messages()
                resp = self.llm.generate(context, config=cfg, max_output_tokens=chat.remaining_tokens)
                meta["llm_usage"] = resp.usage

                if resp.text:
                    assistant_msg = self._message("assistant", resp.text, cfg)
                    ok = chat.add_message(assistant_msg)
                    meta["assistant"] = _admission(chat, assistant_msg, ok)
                    if ok:
                        reply = resp.text

            self.repo.save(chat)

            meta["token_usage"] = chat.token_usage
            meta["remaining_tokens"] = chat.remaining_tokens
            meta["messages"] = chat.count_messages()
            meta["erased_messages"] = len(chat.erased_messages)
            return reply, meta
