"""Tests for promptgate.chat — request parsing and prompt extraction."""

import pytest

from promptgate.chat import Message, last_user_message, parse_chat_request
from promptgate.errors import InvalidRequest


class TestLastUserMessage:
    def test_picks_latest_user_message(self) -> None:
        messages = [
            Message("system", "be brief"),
            Message("user", "first"),
            Message("assistant", "ok"),
            Message("user", "second"),
            Message("assistant", "sure"),
        ]
        assert last_user_message(messages).content == "second"

    def test_none_without_user(self) -> None:
        assert last_user_message([Message("system", "x"), Message("assistant", "y")]) is None

    def test_input_not_mutated(self) -> None:
        messages = [Message("user", "a"), Message("assistant", "b"), Message("user", "c")]
        snapshot = list(messages)
        last_user_message(messages)
        last_user_message(messages)
        assert messages == snapshot


class TestParseChatRequest:
    def test_minimal(self) -> None:
        req = parse_chat_request({"messages": [{"role": "user", "content": "Hello"}]})
        assert req.model is None
        assert req.stream is False
        assert req.messages == (Message("user", "Hello"),)

    def test_model_and_stream(self) -> None:
        req = parse_chat_request(
            {
                "model": "teleprompt-apps",
                "stream": True,
                "messages": [{"role": "user", "content": "Hello"}],
            }
        )
        assert req.model == "teleprompt-apps"
        assert req.stream is True

    def test_empty_model_treated_as_absent(self) -> None:
        req = parse_chat_request({"model": "", "messages": [{"role": "user", "content": "x"}]})
        assert req.model is None

    def test_caller_list_not_mutated(self) -> None:
        raw = [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}]
        parse_chat_request({"messages": raw})
        assert [m["content"] for m in raw] == ["a", "b"]

    @pytest.mark.parametrize(
        "body",
        [
            {"messages": []},
            {},
            {"messages": [{"role": "assistant", "content": "hi"}]},
            {"messages": [{"role": "system", "content": "hi"}]},
        ],
    )
    def test_no_user_message(self, body) -> None:
        with pytest.raises(InvalidRequest, match="User message not found"):
            parse_chat_request(body)

    @pytest.mark.parametrize(
        "body",
        [
            [],
            "hello",
            {"messages": "hello"},
            {"messages": ["hello"]},
            {"model": 42, "messages": [{"role": "user", "content": "x"}]},
            {"messages": [{"role": "user", "content": [{"type": "text", "text": "x"}]}]},
        ],
    )
    def test_malformed(self, body) -> None:
        with pytest.raises(InvalidRequest):
            parse_chat_request(body)

    def test_invalid_request_status(self) -> None:
        with pytest.raises(InvalidRequest) as exc_info:
            parse_chat_request({"messages": []})
        assert exc_info.value.status == 400
        assert exc_info.value.code == "invalid_request"
