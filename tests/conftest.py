import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from context import BotContext, BotServices
from data.store import KVStore

USER_ID = 42
CHAT_ID = 4242


@pytest.fixture
def store(tmp_path):
    return KVStore(str(tmp_path / "kv_store.json"))


@pytest.fixture
def tg():
    tg = MagicMock()
    ok = MagicMock(status_code=200)
    tg.send_message.return_value = ok
    tg.edit_message_text.return_value = ok
    tg.answer_callback_query.return_value = ok
    tg.send_message_reaction.return_value = ok
    return tg


@pytest.fixture
def question_payload():
    def _make(text="Which number completes 1, 1, 2, 3, 5, ?", correct=2):
        return json.dumps(
            {
                "question": text,
                "options": ["6", "7", "8", "9"],
                "correctAnswer": correct,
                "explanation": "Each term is the sum of the previous two.",
            }
        )

    return _make


@pytest.fixture
def make_generator(question_payload):
    """Factory for generate(prompt) fakes; records prompts on `.prompts`."""

    def _make(correct=2, fail=False):
        prompts: list[str] = []

        def generate(prompt: str) -> str:
            prompts.append(prompt)
            if fail:
                raise RuntimeError("LLM unavailable")
            return question_payload(text=f"Question #{len(prompts)}", correct=correct)

        generate.prompts = prompts  # type: ignore[attr-defined]
        return generate

    return _make


@pytest.fixture
def make_ctx(tg, store, tmp_path, make_generator):
    def _make(cmd="", args="", generate=None, chat_type="private", is_admin=False, message_id=10, text=None):
        message = {
            "message_id": message_id,
            "from": {"id": USER_ID, "first_name": "Alice", "username": "alice", "is_bot": False},
            "chat": {"id": CHAT_ID, "type": chat_type},
            "text": text if text is not None else (f"{cmd} {args}".strip()),
        }
        return BotContext(
            tg=tg,
            store=store,
            generate=generate or make_generator(),
            message=message,
            settings={"admin_users": [USER_ID] if is_admin else [], "backup_chat_id": None},
            chat_id=CHAT_ID,
            message_id=message_id,
            user_id=USER_ID,
            username="alice",
            first_name="Alice",
            is_admin=is_admin,
            chat_type=chat_type,
            cmd=cmd,
            args=args,
            request_id="req-1",
            config_path=str(tmp_path / "bot_config.json"),
            store_file=str(store.path),
            pm_log_file=str(tmp_path / "private_messages.jsonl"),
        )

    return _make


@pytest.fixture
def llm(question_payload):
    llm = MagicMock()
    llm.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=question_payload()))],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=80, total_tokens=200),
    )
    return llm


@pytest.fixture
def services(tg, store, llm, tmp_path):
    return BotServices(
        tg=tg,
        llm=llm,
        model="test-model",
        store=store,
        config_path=str(tmp_path / "bot_config.json"),
        store_file=str(store.path),
        pm_log_file=str(tmp_path / "private_messages.jsonl"),
        bot_username="iq_master_bot",
    )


@pytest.fixture
def make_update():
    def _message(text, chat_type="private", update_id=1):
        return {
            "update_id": update_id,
            "message": {
                "message_id": 5,
                "date": 0,
                "from": {"id": USER_ID, "is_bot": False, "first_name": "Alice", "username": "alice"},
                "chat": {"id": CHAT_ID, "type": chat_type},
                "text": text,
            },
        }

    return _message


@pytest.fixture
def make_callback():
    def _callback(data, message_id=77, update_id=2):
        return {
            "update_id": update_id,
            "callback_query": {
                "id": "cbq-1",
                "from": {"id": USER_ID, "is_bot": False, "first_name": "Alice", "username": "alice"},
                "message": {
                    "message_id": message_id,
                    "date": 0,
                    "chat": {"id": CHAT_ID, "type": "private"},
                    "text": "question",
                },
                "chat_instance": "ci",
                "data": data,
            },
        }

    return _callback
