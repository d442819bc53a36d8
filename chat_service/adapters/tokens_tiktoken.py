from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from chat_service.ports.tokens import TokenCounter

log = logging.getLogger("chat_service")


@dataclass
class TiktokenTokenCounter(TokenCounter):
    """
    Счётчик на tiktoken:
    - энкодер выбирается по имени модели (encoding_for_model)
    - для незнакомой модели: strict=True -> None, иначе fallback_encoding
    - не удалось загрузить словарь (нет сети и т.п.) -> None
    """
    fallback_encoding: str = "cl100k_base"
    strict: bool = False

    _encoders: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        import tiktoken
        self._tiktoken = tiktoken

    def _encoder(self, model_name: str) -> Optional[Any]:
        enc = self._encoders.get(model_name)
        if enc is not None:
            return enc

        try:
            enc = self._tiktoken.encoding_for_model(model_name)
        except KeyError:
            if self.strict:
                return None
            try:
                enc = self._tiktoken.get_encoding(self.fallback_encoding)
            except (KeyError, ValueError, OSError) as e:
                log.warning("tiktoken: fallback encoding %s unavailable: %s", self.fallback_encoding, e)
                return None
        except (ValueError, OSError) as e:
            log.warning("tiktoken: encoding for %s unavailable: %s", model_name, e)
            return None

        self._encoders[model_name] = enc
        return enc

    def count_tokens(self, model_name: str, text: str) -> Optional[int]:
        enc = self._encoder(model_name)
        if enc is None:
            return None
        # спецтокены в пользовательском тексте считаем как обычный текст
        try:
            return len(enc.encode(text or "", disallowed_special=()))
        except ValueError as e:
            log.warning("tiktoken: cannot encode text for %s: %s", model_name, e)
            return None
