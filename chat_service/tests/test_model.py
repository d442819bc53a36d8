import dataclasses

import pytest

from chat_service.domain.models import Model


def test_model_fields():
    model = Model(name="gpt-3.5-turbo", max_tokens=4096)
    assert model.name == "gpt-3.5-turbo"
    assert model.max_tokens == 4096


def test_model_is_immutable():
    model = Model(name="gpt-4-1106-preview", max_tokens=128000)
    with pytest.raises(dataclasses.FrozenInstanceError):
        model.max_tokens = 1  # type: ignore[misc]
