"""
Tests for the Gemini-backed agents.

No real API calls: the agents get fake models with the same async
surface as genai.GenerativeModel.
"""

import asyncio
import json
import pytest

from moneys_wisdom.agents import (
    CHAT_APOLOGY,
    FALLBACK_QUOTES,
    ChatAgent,
    ChatMessage,
    ExternalServiceFailure,
    QuoteAgent,
)
from moneys_wisdom.agents.ai_agents import parse_quotes
from moneys_wisdom.audit import AuditLogger
from moneys_wisdom.config import GeminiSettings
from moneys_wisdom.models import AuditEventType


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeQuoteModel:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return FakeResponse(self.text)


class FakeChat:
    def __init__(self, model):
        self._model = model

    async def send_message_async(self, message):
        self._model.sent.append(message)
        if self._model.error:
            raise self._model.error
        return FakeResponse(self._model.reply)


class FakeChatModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.histories = []
        self.sent = []

    def start_chat(self, history):
        self.histories.append(history)
        return FakeChat(self)


@pytest.fixture
def settings():
    return GeminiSettings(api_key="test", retry_attempts=1)


def _quotes_json(*texts):
    return json.dumps([
        {"text": text, "category": "储蓄", "interpretation": "keep going"} for text in texts
    ])


def _service_errors(audit_logger):
    return [
        event for event in audit_logger.recent_events()
        if event.event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
    ]


class TestParseQuotes:

    def test_ids_are_fresh(self):
        quotes = parse_quotes(_quotes_json("a", "b"), 123)
        assert [q.id for q in quotes] == ["quote-0-123", "quote-1-123"]
        assert quotes[0].category == "储蓄"

    def test_array_is_found_inside_prose(self):
        text = "Here you go:\n```json\n" + _quotes_json("a") + "\n```"
        assert len(parse_quotes(text, 1)) == 1

    def test_unusable_items_are_skipped(self):
        text = json.dumps([{"text": ""}, "plain string", {"text": "kept"}])
        assert [q.text for q in parse_quotes(text, 1)] == ["kept"]

    @pytest.mark.parametrize("text", ["", "no array here", "[oops]", "[]"])
    def test_nothing_usable_raises(self, text):
        with pytest.raises(ExternalServiceFailure):
            parse_quotes(text, 1)


class TestQuoteAgent:

    def test_returns_model_quotes(self, settings):
        model = FakeQuoteModel(text=_quotes_json("一", "二", "三"))
        quotes = asyncio.run(QuoteAgent(settings, model=model).fetch_quotes())

        assert [q.text for q in quotes] == ["一", "二", "三"]
        assert str(settings.quote_count) in model.prompts[0]

    def test_falls_back_on_error(self, settings):
        audit_logger = AuditLogger()
        model = FakeQuoteModel(error=RuntimeError("503 overloaded"))

        quotes = asyncio.run(QuoteAgent(settings, model=model, audit_logger=audit_logger).fetch_quotes())

        assert quotes == FALLBACK_QUOTES
        [error] = _service_errors(audit_logger)
        assert error.details["service"] == "gemini_quotes"
        assert "overloaded" in error.error_message

    def test_falls_back_on_bad_json(self, settings):
        model = FakeQuoteModel(text="I cannot do that")
        assert asyncio.run(QuoteAgent(settings, model=model).fetch_quotes()) == FALLBACK_QUOTES

    def test_fallback_list_is_a_copy(self, settings):
        model = FakeQuoteModel(error=RuntimeError("down"))
        quotes = asyncio.run(QuoteAgent(settings, model=model).fetch_quotes())
        quotes.clear()
        assert len(FALLBACK_QUOTES) == 3


class TestChatAgent:

    def test_reply_with_history(self, settings):
        model = FakeChatModel(reply="  汪！先存钱。 ")
        history = [
            ChatMessage(role="user", text="你好"),
            ChatMessage(role="model", text="汪！你好！"),
        ]

        reply = asyncio.run(ChatAgent(settings, model=model).send_message(history, "怎么存钱？"))

        assert reply == "汪！先存钱。"
        assert model.histories[0] == [
            {"role": "user", "parts": ["你好"]},
            {"role": "model", "parts": ["汪！你好！"]},
        ]
        assert model.sent == ["怎么存钱？"]

    def test_apologizes_on_error(self, settings):
        audit_logger = AuditLogger()
        model = FakeChatModel(error=ConnectionError("offline"))

        reply = asyncio.run(
            ChatAgent(settings, model=model, audit_logger=audit_logger).send_message([], "hi")
        )

        assert reply == CHAT_APOLOGY
        assert _service_errors(audit_logger)[0].details["service"] == "gemini_chat"

    def test_empty_reply_counts_as_failure(self, settings):
        model = FakeChatModel(reply="   ")
        assert asyncio.run(ChatAgent(settings, model=model).send_message([], "hi")) == CHAT_APOLOGY

    def test_role_is_restricted(self):
        with pytest.raises(ValueError):
            ChatMessage(role="system", text="x")
