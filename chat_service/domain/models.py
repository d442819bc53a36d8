from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal, Optional
from uuid import uuid4

from chat_service.domain.errors import EmptyContent, InvalidRole, InvalidTimestamp

if TYPE_CHECKING:
    from chat_service.ports.clock import Clock
    from chat_service.ports.tokens import TokenCounter

Role = Literal["system", "user", "assistant"]
ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})


def utcnow() -> datetime:
    """Всегда timezone-aware UTC."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Naive datetime считаем UTC."""
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def parse_role(raw: object) -> Role:
    """Строка извне (файл, HTTP, CLI) -> Role. Иначе InvalidRole."""
    if isinstance(raw, str) and raw in ROLES:
        return raw  # type: ignore[return-value]
    raise InvalidRole(raw)


def tokens_or_default(
    counter: Optional["TokenCounter"],
    model_name: str,
    text: str,
    default: int,
) -> int:
    """
    Результат токенайзера или переданное значение.
    Токенайзер сообщает о неудаче через None, исключений тут нет.
    """
    if counter is None:
        return default
    counted = counter.count_tokens(model_name, text)
    if counted is None or counted < 0:
        return default
    return counted


@dataclass(frozen=True)
class Model:
    name: str
    max_tokens: int


@dataclass(frozen=True)
class Message:
    id: str
    role: str
    content: str
    tokens: int
    model: Model
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        role: str,
        content: str,
        *,
        model: Model,
        tokens: int = 0,
        counter: Optional["TokenCounter"] = None,
        message_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "Message":
        return cls(
            id=message_id or uuid4().hex,
            role=role,
            content=content,
            tokens=tokens_or_default(counter, model.name, content, tokens),
            model=model,
            created_at=created_at or utcnow(),
        )

    def copy(self) -> "Message":
        # model остаётся общей ссылкой
        return replace(self)

    def validate(self, clock: Optional["Clock"] = None) -> None:
        if self.role not in ROLES:
            raise InvalidRole(self.role)

        if len(self.content) == 0:
            raise EmptyContent()

        now = as_utc(clock.now()) if clock is not None else utcnow()
        if as_utc(self.created_at) > now:
            raise InvalidTimestamp(self.created_at)
