from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from chat_service.domain.chat import Chat, ChatConfig, parse_status
from chat_service.domain.models import Message, Model, as_utc, parse_role
from chat_service.ports.repo import ChatRepo

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


def _model_to_dict(m: Model) -> Dict[str, Any]:
    return {"name": m.name, "max_tokens": m.max_tokens}


def _msg_to_dict(m: Message) -> Dict[str, Any]:
    return {
        "id": m.id,
        "role": m.role,
        "content": m.content,
        "tokens": m.tokens,
        "model": _model_to_dict(m.model),
        "created_at": m.created_at.isoformat(),
    }


def chat_to_dict(chat: Chat) -> Dict[str, Any]:
    cfg = chat.config
    return {
        "id": chat.id,
        "user_id": chat.user_id,
        "status": chat.status,
        "token_usage": chat.token_usage,
        "config": {
            "model": _model_to_dict(cfg.model),
            "temperature": cfg.temperature,
            "top_p": cfg.top_p,
            "n": cfg.n,
            "stop": list(cfg.stop),
            "max_tokens": cfg.max_tokens,
            "presence_penalty": cfg.presence_penalty,
            "frequency_penalty": cfg.frequency_penalty,
        },
        "initial_system_message": _msg_to_dict(chat.initial_system_message),
        "messages": [_msg_to_dict(m) for m in chat.messages],
        "erased_messages": [_msg_to_dict(m) for m in chat.erased_messages],
    }


def chat_from_dict(data: Dict[str, Any]) -> Chat:
    # одна Model на (name, max_tokens) в пределах чата
    models: Dict[Tuple[str, int], Model] = {}

    def model(d: Dict[str, Any]) -> Model:
        key = (str(d["name"]), int(d["max_tokens"]))
        if key not in models:
            models[key] = Model(name=key[0], max_tokens=key[1])
        return models[key]

    def msg(d: Dict[str, Any]) -> Message:
        return Message(
            id=str(d["id"]),
            role=parse_role(d["role"]),
            content=str(d["content"]),
            tokens=int(d["tokens"]),
            model=model(d["model"]),
            created_at=as_utc(datetime.fromisoformat(d["created_at"])),
        )

    c = data["config"]
    config = ChatConfig(
        model=model(c["model"]),
        max_tokens=int(c["max_tokens"]),
        temperature=float(c.get("temperature", 1.0)),
        top_p=float(c.get("top_p", 1.0)),
        n=int(c.get("n", 1)),
        stop=tuple(str(s) for s in c.get("stop", [])),
        presence_penalty=float(c.get("presence_penalty", 0.0)),
        frequency_penalty=float(c.get("frequency_penalty", 0.0)),
    )

    messages: List[Message] = [msg(m) for m in data.get("messages", [])]
    chat = Chat(
        id=str(data["id"]),
        user_id=str(data["user_id"]),
        initial_system_message=msg(data["initial_system_message"]),
        config=config,
        messages=messages,
        erased_messages=[msg(m) for m in data.get("erased_messages", [])],
        status=parse_status(data.get("status", "active")),
        token_usage=int(data.get("token_usage", 0)),
    )
    chat.refresh_token_usage()
    return chat


class JsonFileChatRepo(ChatRepo):
    """
    Один JSON-файл на чат: <root>/<chat_id>.json
    token_usage при загрузке пересчитывается по messages.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, chat_id: str) -> Path:
        return self.root / f"{_SAFE_ID.sub('_', chat_id)}.json"

    def get(self, chat_id: str) -> Optional[Chat]:
        p = self._path(chat_id)
        if not p.exists():
            return None
        data = json.loads(p.read_text(encoding="utf-8"))
        return chat_from_dict(data)

    def save(self, chat: Chat) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        p = self._path(chat.id)
        tmp = p.with_name(p.name + ".tmp")
        tmp.write_text(json.dumps(chat_to_dict(chat), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(p)

    def list_ids(self, user_id: str | None = None) -> list[str]:
        out: List[str] = []
        for p in sorted(self.root.glob("*.json")):
            data = json.loads(p.read_text(encoding="utf-8"))
            if user_id is None or data.get("user_id") == user_id:
                out.append(str(data["id"]))
        return out

    def delete(self, chat_id: str) -> bool:
        p = self._path(chat_id)
        if not p.exists():
            return False
        p.unlink()
        return True
