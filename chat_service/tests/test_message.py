from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from chat_service.domain.errors import EmptyContent, InvalidRole, InvalidTimestamp
from chat_service.domain.models import Message, Model, parse_role, tokens_or_default
from chat_service.adapters.tokens_approx import ApproxTokenCounter


class FixedClock:
    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now


class FailingCounter:
    def count_tokens(self, model_name: str, text: str) -> Optional[int]:
        return None


class ConstCounter:
    def __init__(self, value: int):
        self.value = value
        self.calls = []

    def count_tokens(self, model_name: str, text: str) -> Optional[int]:
        self.calls.append((model_name, text))
        return self.value


MODEL = Model(name="gpt-3.5-turbo", max_tokens=4096)


def _msg(role="user", content="Hello, world!", created_at=None) -> Message:
    return Message(
        id="m1",
        role=role,
        content=content,
        tokens=4092,
        model=MODEL,
        created_at=created_at or datetime.now(timezone.utc),
    )


def test_new_message_keeps_fields():
    now = datetime.now(timezone.utc)
    msg = _msg(created_at=now)
    assert msg.id == "m1"
    assert msg.role == "user"
    assert msg.content == "Hello, world!"
    assert msg.tokens == 4092
    assert msg.model is MODEL
    assert msg.created_at == now


def test_validate_ok():
    _msg().validate()


def test_invalid_role():
    with pytest.raises(InvalidRole):
        _msg(role="invalid").validate()


def test_empty_role_is_invalid():
    with pytest.raises(InvalidRole):
        _msg(role="").validate()


def test_empty_content():
    with pytest.raises(EmptyContent):
        _msg(content="").validate()


def test_created_at_in_future():
    with pytest.raises(InvalidTimestamp):
        _msg(created_at=datetime.now(timezone.utc) + timedelta(days=1)).validate()


def test_naive_created_at_treated_as_utc():
    naive_now = datetime.now(timezone.utc).replace(tzinfo=None)

    with pytest.raises(InvalidTimestamp):
        _msg(created_at=naive_now + timedelta(days=1)).validate()
    _msg(created_at=naive_now - timedelta(minutes=1)).validate()

    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidTimestamp):
        _msg(created_at=datetime(2024, 1, 2)).validate(FixedClock(t0))
    _msg(created_at=t0).validate(FixedClock(t0.replace(tzinfo=None)))


def test_first_failing_check_wins():
    bad = _msg(role="", content="", created_at=datetime.now(timezone.utc) + timedelta(days=1))
    with pytest.raises(InvalidRole):
        bad.validate()


def test_validate_uses_clock():
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    msg = _msg(created_at=t0)

    msg.validate(FixedClock(t0))
    with pytest.raises(InvalidTimestamp):
        msg.validate(FixedClock(t0 - timedelta(seconds=1)))


def test_create_uses_counter_with_model_name():
    counter = ConstCounter(7)
    msg = Message.create("user", "Привет", model=MODEL, tokens=100, counter=counter)
    assert msg.tokens == 7
    assert counter.calls == [("gpt-3.5-turbo", "Привет")]
    assert msg.id
    assert msg.created_at.tzinfo is not None


def test_create_falls_back_when_tokenizer_fails():
    msg = Message.create("user", "Привет", model=MODEL, tokens=42, counter=FailingCounter())
    assert msg.tokens == 42


def test_create_without_counter_uses_given_tokens():
    msg = Message.create("assistant", "ok", model=MODEL, tokens=3, message_id="a1")
    assert msg.tokens == 3
    assert msg.id == "a1"


def test_tokens_or_default_ignores_negative_counts():
    assert tokens_or_default(ConstCounter(-1), "m", "x", 5) == 5
    assert tokens_or_default(ApproxTokenCounter(), "m", "abcdefgh", 5) == 2


def test_copy_is_independent_and_shares_model():
    msg = _msg()
    dup = msg.copy()
    assert dup == msg
    assert dup is not msg
    assert dup.model is msg.model

    changed = replace(dup, content="other", tokens=1)
    assert msg.content == "Hello, world!"
    assert msg.tokens == 4092
    assert changed.model is msg.model


def test_parse_role():
    assert parse_role("assistant") == "assistant"
    with pytest.raises(InvalidRole):
        parse_role("tool")
    with pytest.raises(InvalidRole):
        parse_role(None)
