import pytest

from chat_service.adapters.tokens_approx import ApproxTokenCounter
from chat_service.ports.tokens import TokenCounter


def test_approx_counter():
    counter = ApproxTokenCounter()
    assert isinstance(counter, TokenCounter)
    assert counter.count_tokens("gpt-3.5-turbo", "") == 0
    assert counter.count_tokens("gpt-3.5-turbo", "abcd") == 1
    assert counter.count_tokens("gpt-3.5-turbo", "abcde") == 2


def test_tiktoken_strict_unknown_model_returns_none():
    pytest.importorskip("tiktoken")
    from chat_service.adapters.tokens_tiktoken import TiktokenTokenCounter

    counter = TiktokenTokenCounter(strict=True)
    assert counter.count_tokens("definitely-not-a-model", "Hello, world!") is None


def test_tiktoken_known_model():
    pytest.importorskip("tiktoken")
    from chat_service.adapters.tokens_tiktoken import TiktokenTokenCounter

    counter = TiktokenTokenCounter()
    n = counter.count_tokens("gpt-3.5-turbo", "Hello, world!")
    if n is None:
        pytest.skip("tiktoken encoding is not available offline")
    assert n > 0
    assert counter.count_tokens("definitely-not-a-model", "Hello, world!") == n


def _byte_encoding():
    tiktoken = pytest.importorskip("tiktoken")
    # по токену на байт, без слияний: считается без сети
    return tiktoken.Encoding(
        name="bytes",
        pat_str=r"\S+|\s+",
        mergeable_ranks={bytes([i]): i for i in range(256)},
        special_tokens={"<|endoftext|>": 256},
    )


def test_tiktoken_special_token_text_counted_as_plain_text():
    from chat_service.adapters.tokens_tiktoken import TiktokenTokenCounter
    from chat_service.domain.models import Message, Model

    enc = _byte_encoding()
    counter = TiktokenTokenCounter()
    counter._encoders["gpt-3.5-turbo"] = enc

    text = "say <|endoftext|> please"
    assert counter.count_tokens("gpt-3.5-turbo", text) == len(text.encode("utf-8"))

    msg = Message.create(
        "user", text, model=Model(name="gpt-3.5-turbo", max_tokens=4096), tokens=1, counter=counter,
    )
    assert msg.tokens == len(text.encode("utf-8"))


def test_tiktoken_encode_error_returns_none():
    pytest.importorskip("tiktoken")
    from chat_service.adapters.tokens_tiktoken import TiktokenTokenCounter
    from chat_service.domain.models import Message, Model

    class BrokenEncoding:
        def encode(self, text, **kwargs):
            raise ValueError("cannot encode")

    counter = TiktokenTokenCounter()
    counter._encoders["gpt-3.5-turbo"] = BrokenEncoding()

    assert counter.count_tokens("gpt-3.5-turbo", "hi") is None
    msg = Message.create("user", "hi", model=Model(name="gpt-3.5-turbo", max_tokens=4096), tokens=9, counter=counter)
    assert msg.tokens == 9
