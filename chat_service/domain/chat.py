from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Tuple

from chat_service.domain.errors import ChatEnded, InvalidStatus, InvalidTokenUsage
from chat_service.domain.models import Message, Model

ChatStatus = Literal["active", "ended"]
STATUSES: frozenset[str] = frozenset({"active", "ended"})


def parse_status(raw: object) -> ChatStatus:
    if isinstance(raw, str) and raw in STATUSES:
        return raw  # type: ignore[return-value]
    raise InvalidStatus(raw)


@dataclass(frozen=True)
class ChatConfig:
    model: Model
    max_tokens: int
    temperature: float = 1.0
    top_p: float = 1.0
    n: int = 1
    stop: Tuple[str, ...] = ()
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0


@dataclass
class Chat:
    """
    Один диалог пользователя с моделью.
    - messages: принятая история (initial_system_message в неё не входит и в бюджет не считается)
    - erased_messages: сообщения, не влезшие в config.max_tokens
    - token_usage: всегда сумма tokens по messages
    """

    id: str
    user_id: str
    initial_system_message: Message
    config: ChatConfig
    messages: List[Message] = field(default_factory=list)
    erased_messages: List[Message] = field(default_factory=list)
    status: str = "active"
    token_usage: int = 0

    @property
    def is_ended(self) -> bool:
        return self.status == "ended"

    @property
    def remaining_tokens(self) -> int:
        return max(0, self.config.max_tokens - self.token_usage)

    def add_message(self, message: Message) -> bool:
        """True, если сообщение принято в историю; False, если ушло в erased_messages."""
        if self.is_ended:
            raise ChatEnded(self.id)

        if self.config.max_tokens >= message.tokens + self.token_usage:
            self.messages.append(message.copy())
            self.refresh_token_usage()
            return True

        self.erased_messages.append(message.copy())
        return False

    def refresh_token_usage(self) -> int:
        self.token_usage = sum(m.tokens for m in self.messages)
        return self.token_usage

    def get_messages(self) -> List[Message]:
        return [m.copy() for m in self.messages]

    def get_erased_messages(self) -> List[Message]:
        return [m.copy() for m in self.erased_messages]

    def count_messages(self) -> int:
        return len(self.messages)

    def end(self) -> None:
        self.status = "ended"

    def validate(self) -> None:
        if self.status not in STATUSES:
            raise InvalidStatus(self.status)

        if self.token_usage > self.config.max_tokens:
            raise InvalidTokenUsage(self.token_usage, self.config.max_tokens)
