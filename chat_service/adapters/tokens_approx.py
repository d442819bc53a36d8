from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from chat_service.ports.tokens import TokenCounter


@dataclass
class ApproxTokenCounter(TokenCounter):
    """Грубая оценка без зависимостей: 1 токен ~ chars_per_token символов. Модель не учитывается."""
    chars_per_token: int = 4

    def count_tokens(self, model_name: str, text: str) -> Optional[int]:
        return math.ceil(len(text or "") / max(1, self.chars_per_token))
