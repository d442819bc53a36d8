from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from chat_service.domain.chat import Chat


@runtime_checkable
class ChatRepo(Protocol):
    """Персистентное хранилище чатов."""

    def get(self, chat_id: str) -> Optional[Chat]:
        ...

    def save(self, chat: Chat) -> None:
        ...

    def list_ids(self, user_id: str | None = None) -> list[str]:
        ...

    def delete(self, chat_id: str) -> bool:
        ...
