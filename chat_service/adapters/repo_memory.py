from __future__ import annotations

import copy
from typing import Dict, Optional

from chat_service.domain.chat import Chat
from chat_service.ports.repo import ChatRepo


class InMemoryChatRepo(ChatRepo):
    """Хранит независимые копии: изменения после save() не видны репозиторию."""

    def __init__(self) -> None:
        self._chats: Dict[str, Chat] = {}

    def get(self, chat_id: str) -> Optional[Chat]:
        chat = self._chats.get(chat_id)
        return copy.deepcopy(chat) if chat is not None else None

    def save(self, chat: Chat) -> None:
        self._chats[chat.id] = copy.deepcopy(chat)

    def list_ids(self, user_id: str | None = None) -> list[str]:
        return [cid for cid, c in self._chats.items() if user_id is None or c.user_id == user_id]

    def delete(self, chat_id: str) -> bool:
        return self._chats.pop(chat_id, None) is not None
