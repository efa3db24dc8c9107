"""Shared test doubles and message builders."""

from finance_agent.models.conversation import ChatMessage, ChatRole


class FakeModelClient:
    """Model client returning canned replies and recording each call."""

    provider = "fake"

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or ["Sure."])
        self.error = error
        self.calls: list[tuple[str, list[ChatMessage]]] = []

    def generate(self, system, messages):
        self.calls.append((system, list(messages)))
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


def user(text: str) -> ChatMessage:
    return ChatMessage(role=ChatRole.USER, text=text)


def model(text: str) -> ChatMessage:
    return ChatMessage(role=ChatRole.MODEL, text=text)
