from dataclasses import replace

import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from chat_service.app.api import create_app
from chat_service.app.settings import AppSettings
from chat_service.app.wiring import reset_cache


@pytest.fixture()
def client():
    reset_cache()
    s = AppSettings()
    settings = replace(
        s,
        chat=replace(s.chat, max_tokens=30, system_prompt="SYS"),
        backend=replace(s.backend, repo_backend="memory"),
    )
    yield TestClient(create_app(settings))
    reset_cache()


def test_api_chat_flow(client):
    assert client.get("/health").json() == {"ok": True}

    r = client.post("/chats", json={"user_id": "u1"})
    assert r.status_code == 200
    chat = r.json()
    assert chat["status"] == "active"
    assert chat["config"]["max_tokens"] == 30
    assert chat["initial_system_message"]["content"] == "SYS"

    r = client.post(f"/chats/{chat['id']}/messages", json={"content": "hi"})
    assert r.status_code == 200
    body = r.json()
    assert body["answer"].startswith("[mock]")
    assert body["meta"]["user"]["admitted"] is True

    r = client.post(f"/chats/{chat['id']}/messages", json={"content": "x" * 400})
    assert r.status_code == 200
    assert r.json()["answer"] is None
    assert r.json()["meta"]["user"]["admitted"] is False

    got = client.get(f"/chats/{chat['id']}").json()
    assert len(got["messages"]) == 2
    assert len(got["erased_messages"]) == 1
    assert client.get(f"/chats/{chat['id']}/validate").json() == {"valid": True}

    r = client.post(f"/chats/{chat['id']}/end")
    assert r.json()["status"] == "ended"

    r = client.post(f"/chats/{chat['id']}/messages", json={"content": "again"})
    assert r.status_code == 409


def test_api_errors(client):
    assert client.get("/chats/missing").status_code == 404
    assert client.post("/chats/missing/messages", json={"content": "hi"}).status_code == 404

    chat = client.post("/chats", json={"config": {"max_tokens": 5, "model": "gpt-4"}}).json()
    assert chat["config"]["max_tokens"] == 5
    assert chat["config"]["model"]["name"] == "gpt-4"

    r = client.post(f"/chats/{chat['id']}/messages", json={"content": ""})
    assert r.status_code == 422
    assert r.json()["detail"]["error"] == "EmptyContent"


def test_api_model_override_uses_known_capacity(client):
    chat = client.post("/chats", json={"config": {"model": "gpt-4o"}}).json()
    assert chat["config"]["model"] == {"name": "gpt-4o", "max_tokens": 128000}

    chat = client.post("/chats", json={"config": {"model": "gpt-4o", "context_tokens": 1000}}).json()
    assert chat["config"]["model"]["max_tokens"] == 1000

    chat = client.post("/chats", json={"config": {"model": "my-local-model", "max_tokens": 77}}).json()
    assert chat["config"]["model"]["max_tokens"] == 77
