from __future__ import annotations

from datetime import datetime

from chat_service.domain.models import utcnow
from chat_service.ports.clock import Clock


class SystemClock(Clock):
    def now(self) -> datetime:
        return utcnow()
