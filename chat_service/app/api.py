from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from chat_service.app.settings import KNOWN_MODELS, AppSettings
from chat_service.app.wiring import build_bundle
from chat_service.domain.chat import Chat, ChatConfig
from chat_service.domain.errors import ChatEnded, ChatError, MessageError
from chat_service.domain.models import Message, Model
from chat_service.use_cases.chat_session import ChatNotFound

logging.basicConfig(level=logging.INFO, format="%(message)s")
log = logging.getLogger("chat_service")


class ConfigOverrides(BaseModel):
    model: Optional[str] = None
    context_tokens: Optional[int] = Field(default=None, ge=0)
    max_tokens: Optional[int] = Field(default=None, ge=0)
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    stop: Optional[List[str]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None


class CreateChatRequest(BaseModel):
    user_id: str = "default"
    system_prompt: Optional[str] = None
    config: Optional[ConfigOverrides] = None


class SendMessageRequest(BaseModel):
    content: str


class SendMessageResponse(BaseModel):
    answer: Optional[str]
    meta: Dict[str, Any]


def m2d(m: Message) -> Dict[str, Any]:
    return {
        "id": m.id,
        "role": m.role,
        "content": m.content,
        "tokens": m.tokens,
        "model": m.model.name,
        "created_at": m.created_at.isoformat(),
    }


def chat2d(chat: Chat) -> Dict[str, Any]:
    cfg = chat.config
    return {
        "id": chat.id,
        "user_id": chat.user_id,
        "status": chat.status,
        "token_usage": chat.token_usage,
        "remaining_tokens": chat.remaining_tokens,
        "config": {
            "model": {"name": cfg.model.name, "max_tokens": cfg.model.max_tokens},
            "max_tokens": cfg.max_tokens,
            "temperature": cfg.temperature,
            "top_p": cfg.top_p,
            "n": cfg.n,
            "stop": list(cfg.stop),
            "presence_penalty": cfg.presence_penalty,
            "frequency_penalty": cfg.frequency_penalty,
        },
        "initial_system_message": m2d(chat.initial_system_message),
        "messages": [m2d(m) for m in chat.get_messages()],
        "erased_messages": [m2d(m) for m in chat.get_erased_messages()],
    }


def _config(base: ChatConfig, o: ConfigOverrides) -> ChatConfig:
    model = base.model
    if o.model is not None or o.context_tokens is not None:
        name = o.model or base.model.name
        if o.context_tokens is not None:
            capacity = o.context_tokens
        elif name == base.model.name:
            capacity = base.model.max_tokens
        else:
            capacity = KNOWN_MODELS.get(name, o.max_tokens if o.max_tokens is not None else base.max_tokens)
        model = Model(name=name, max_tokens=capacity)
    return ChatConfig(
        model=model,
        max_tokens=o.max_tokens if o.max_tokens is not None else base.max_tokens,
        temperature=o.temperature if o.temperature is not None else base.temperature,
        top_p=o.top_p if o.top_p is not None else base.top_p,
        n=o.n if o.n is not None else base.n,
        stop=tuple(o.stop) if o.stop is not None else base.stop,
        presence_penalty=o.presence_penalty if o.presence_penalty is not None else base.presence_penalty,
        frequency_penalty=o.frequency_penalty if o.frequency_penalty is not None else base.frequency_penalty,
    )


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, ChatNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ChatEnded):
        return HTTPException(status_code=409, detail="conversation closed")
    if isinstance(e, MessageError):
        return HTTPException(status_code=422, detail={"error": type(e).__name__, "message": str(e)})
    return HTTPException(status_code=500, detail={"error": type(e).__name__, "message": str(e)})


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title="chat_service")
    bundle = build_bundle(settings)
    session = bundle.session

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/chats")
    def create_chat(req: CreateChatRequest):
        config = _config(session.default_config, req.config) if req.config is not None else None
        try:
            chat = session.start(req.user_id, system_prompt=req.system_prompt, config=config)
        except MessageError as e:
            raise _http_error(e)
        return chat2d(chat)

    @app.get("/chats/{chat_id}")
    def get_chat(chat_id: str):
        try:
            return chat2d(session.get(chat_id))
        except ChatNotFound as e:
            raise _http_error(e)

    @app.post("/chats/{chat_id}/messages", response_model=SendMessageResponse)
    def send_message(chat_id: str, req: SendMessageRequest):
        try:
            answer, meta = session.send(chat_id, req.content)
        except (ChatNotFound, ChatEnded, MessageError) as e:
            raise _http_error(e)
        log.info(json.dumps({"event": "chat", **meta}, ensure_ascii=False))
        return SendMessageResponse(answer=answer, meta=meta)

    @app.post("/chats/{chat_id}/end")
    def end_chat(chat_id: str):
        try:
            return chat2d(session.end(chat_id))
        except ChatNotFound as e:
            raise _http_error(e)

    @app.get("/chats/{chat_id}/validate")
    def validate_chat(chat_id: str):
        try:
            chat = session.get(chat_id)
            chat.validate()
        except (ChatNotFound, ChatError) as e:
            raise _http_error(e)
        return {"valid": True}

    return app


app = create_app(AppSettings.from_env())
