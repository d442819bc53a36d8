from __future__ import annotations


class ChatError(Exception):
    """Ошибки чата (жизненный цикл и согласованность)."""


class ChatEnded(ChatError):
    def __init__(self, chat_id: str = "") -> None:
        super().__init__(f"chat {chat_id} has already ended" if chat_id else "chat has already ended")
        self.chat_id = chat_id


class InvalidStatus(ChatError):
    def __init__(self, status: object) -> None:
        super().__init__(f"status is invalid: {status!r}")
        self.status = status


class InvalidTokenUsage(ChatError):
    def __init__(self, token_usage: int, max_tokens: int) -> None:
        super().__init__(f"token usage is invalid: {token_usage} > {max_tokens}")
        self.token_usage = token_usage
        self.max_tokens = max_tokens


class MessageError(Exception):
    """Ошибки валидации отдельного сообщения."""


class InvalidRole(MessageError):
    def __init__(self, role: object) -> None:
        super().__init__(f"role is invalid: {role!r}")
        self.role = role


class EmptyContent(MessageError):
    def __init__(self) -> None:
        super().__init__("content is empty")


class InvalidTimestamp(MessageError):
    def __init__(self, created_at: object) -> None:
        super().__init__(f"created_at is invalid: {created_at}")
        self.created_at = created_at
