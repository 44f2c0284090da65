"""Inbound chat request parsing and prompt extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from promptgate.errors import InvalidRequest


@dataclass(frozen=True)
class Message:
    role: str
    content: str


@dataclass(frozen=True)
class ChatRequest:
    messages: tuple[Message, ...]
    model: str | None = None
    stream: bool = False


def last_user_message(messages: Sequence[Message]) -> Message | None:
    """Return the most recent message with role "user", scanning backwards."""
    for message in reversed(messages):
        if message.role == "user":
            return message
    return None


def parse_chat_request(body: Any) -> ChatRequest:
    """Validate a decoded JSON body. Raises InvalidRequest on malformed input."""
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")

    raw_messages = body.get("messages") or []
    if not isinstance(raw_messages, list):
        raise InvalidRequest("'messages' must be an array")

    messages = []
    for raw in raw_messages:
        if not isinstance(raw, dict):
            raise InvalidRequest("Each message must be an object")
        content = raw.get("content")
        messages.append(
            Message(role=str(raw.get("role", "")), content="" if content is None else content)
        )

    model = body.get("model")
    if model is not None and not isinstance(model, str):
        raise InvalidRequest("'model' must be a string")

    request = ChatRequest(
        messages=tuple(messages), model=model or None, stream=bool(body.get("stream"))
    )
    prompt = last_user_message(request.messages)
    if prompt is None:
        raise InvalidRequest("User message not found (role: user)")
    if not isinstance(prompt.content, str):
        raise InvalidRequest("User message content must be a string")
    return request
