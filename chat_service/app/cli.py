from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace

from chat_service.app.settings import AppSettings
from chat_service.app.wiring import build_bundle
from chat_service.domain.errors import ChatEnded, ChatError, MessageError
from chat_service.use_cases.chat_session import ChatNotFound


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--uid", default="default")
    parser.add_argument("--chat", default=None, help="Resume chat by id")
    parser.add_argument("--debug", action="store_true")

    parser.add_argument("--store", default=None, help="Override data store dir")
    parser.add_argument("--model", default=None)
    parser.add_argument("--model-max-tokens", type=int, default=None)
    parser.add_argument("--max-tokens", type=int, default=None, help="Chat token budget")
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--tokenizer", choices=["approx", "tiktoken"], default=None)
    parser.add_argument("--llm", choices=["mock", "ollama"], default=None)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.debug else logging.WARNING, format="%(message)s")

    settings = AppSettings.from_env()

    if args.store is not None:
        settings = replace(settings, data_store_dir=args.store)

    chat_s = settings.chat
    if args.model is not None:
        chat_s = replace(chat_s, model=args.model)
    if args.model_max_tokens is not None:
        chat_s = replace(chat_s, model_max_tokens=args.model_max_tokens)
    if args.max_tokens is not None:
        chat_s = replace(chat_s, max_tokens=args.max_tokens)
    if args.temperature is not None:
        chat_s = replace(chat_s, temperature=args.temperature)

    backend = settings.backend
    if args.tokenizer is not None:
        backend = replace(backend, tokenizer_backend=args.tokenizer)
    if args.llm is not None:
        backend = replace(backend, llm_backend=args.llm)
    settings = replace(settings, chat=chat_s, backend=backend)

    session = build_bundle(settings).session

    if args.chat is not None:
        try:
            chat = session.get(args.chat)
        except ChatNotFound as e:
            parser.error(str(e))
    else:
        chat = session.start(args.uid)

    chat_id = chat.id
    print(f"Chat: {chat_id} ({chat.config.model.name}, budget {chat.config.max_tokens}, status {chat.status})")
    print("Type /exit to quit.")
    print("Commands: /history | /erased | /usage | /validate | /end\n")

    while True:
        user_text = input("you> ").strip()
        if not user_text:
            continue
        if user_text == "/exit":
            break

        if user_text == "/history":
            for m in session.history(chat_id):
                print(f"  [{m.role}] ({m.tokens}) {m.content}")
            print()
            continue

        if user_text == "/erased":
            erased = session.get(chat_id).get_erased_messages()
            if not erased:
                print("bot> (nothing erased)\n")
            for m in erased:
                print(f"  [{m.role}] ({m.tokens}) {m.content}")
            continue

        if user_text == "/usage":
            c = session.get(chat_id)
            print(f"bot> usage {c.token_usage}/{c.config.max_tokens}, remaining {c.remaining_tokens}\n")
            continue

        if user_text == "/validate":
            try:
                session.get(chat_id).validate()
                print("bot> ok\n")
            except ChatError as e:
                print(f"bot> {type(e).__name__}: {e}\n")
            continue

        if user_text == "/end":
            session.end(chat_id)
            print("bot> chat ended\n")
            continue

        try:
            answer, meta = session.send(chat_id, user_text)
        except ChatEnded:
            print("bot> conversation closed\n")
            continue
        except MessageError as e:
            print(f"bot> {type(e).__name__}: {e}\n")
            continue

        if not meta["user"]["admitted"]:
            print("bot> (message does not fit the token budget, erased)\n")
        elif answer is None:
            print("bot> (no reply: token budget exhausted)\n")
        else:
            print(f"bot> {answer}\n")

        if args.debug:
            print("debug> " + json.dumps(meta, ensure_ascii=False, indent=2) + "\n")


if __name__ == "__main__":
    main()
