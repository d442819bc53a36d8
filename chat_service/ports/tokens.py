from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class TokenCounter(Protocol):
    """
    Считает токены текста для конкретной модели.
    Конвенция: None означает "посчитать не получилось" (неизвестная модель,
    нет словаря и т.п.), вызывающий сам подставляет запасное значение.
    """

    def count_tokens(self, model_name: str, text: str) -> Optional[int]:
        ...
