"""
AI Agents for Money's Wisdom

Two small Gemini-backed agents:

1. QUOTE AGENT:
   - CAN: Fetch inspiring quotes from "A Dog Named Money" for the wall
   - NEVER: Fails the page; on any error the bundled quotes are shown

2. CHAT AGENT ("Money", the talking Labrador):
   - CAN: Answer beginner questions about saving, investing, confidence
   - CANNOT: See or change the user's ledger
   - NEVER: Raises; on any error the dog apologizes

CRITICAL BOUNDARY: Neither agent has access to AppData. The ledger is
computed deterministically elsewhere; the LLM only produces words.

Failures are retried (tenacity), then logged as external service errors
and replaced by a fallback.
"""

import json
from typing import Literal, Optional, Sequence

import google.generativeai as genai
from pydantic import BaseModel, Field, ValidationError
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from moneys_wisdom.audit.logger import AuditLogger
from moneys_wisdom.config import GeminiSettings, get_settings
from moneys_wisdom.ledger.mutator import now_millis


class ExternalServiceFailure(Exception):
    """The model could not be reached or returned something unusable."""
    pass


class Quote(BaseModel):
    """One quote card on the wall."""
    id: str
    text: str = Field(..., min_length=1)
    category: str = ""
    interpretation: str = ""


class ChatMessage(BaseModel):
    """One turn of the chat. 'model' is the dog."""
    role: Literal["user", "model"]
    text: str


FALLBACK_QUOTES = [
    Quote(
        id="fallback-1",
        text="当你决定做一件事情的时候，你必须在72小时之内完成，否则你很可能永远不会做了。",
        category="行动力",
        interpretation="行动的黄金法则是趁热打铁，拖延是梦想的杀手。",
    ),
    Quote(
        id="fallback-2",
        text="尝试纯粹是一种借口，你还没有做，就已经给自己想好了退路。不能试验，你只有两个选择：做，或者不做。",
        category="决心",
        interpretation="全力以赴是成功的唯一途径，不要给自己留退路。",
    ),
    Quote(
        id="fallback-3",
        text="金钱有一些秘密和规律，要想了解这些秘密和规律，前提条件是，你自己必须真的有这个愿望。",
        category="渴望",
        interpretation="财富始于对财富的渴望和对知识的追求。",
    ),
]

CHAT_APOLOGY = "汪！抱歉，我现在有点累了，请稍后再跟我说话吧。"

QUOTE_SYSTEM_INSTRUCTION = (
    "You are an expert on the book 'A Dog Named Money'. Extract accurate quotes."
)

CHAT_SYSTEM_INSTRUCTION = """You are 'Money' (钱钱), the talking Labrador from the book 'A Dog Named Money'.
You are wise, patient, encouraging, and knowledgeable about financial literacy for beginners.
You speak in a friendly tone, suitable for both children and adults.
Your goal is to help the user understand financial freedom, saving, investment, and building confidence.
Always answer in Chinese.
Keep answers concise (under 150 words) unless asked for details."""


def _retrying(attempts: int) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )


def parse_quotes(text: str, stamp: int) -> list[Quote]:
    """
    Parse the model's JSON array into quotes with fresh ids.

    Raises:
        ExternalServiceFailure: If no usable quote is in the response
    """
    start = text.find("[")
    end = text.rfind("]") + 1
    if start < 0 or end <= start:
        raise ExternalServiceFailure("Quote response contains no JSON array")
    try:
        items = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ExternalServiceFailure(f"Quote response is not valid JSON: {e}") from e

    quotes = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        try:
            quotes.append(Quote(
                id=f"quote-{index}-{stamp}",
                text=str(item.get("text") or ""),
                category=str(item.get("category") or ""),
                interpretation=str(item.get("interpretation") or ""),
            ))
        except ValidationError:
            continue

    if not quotes:
        raise ExternalServiceFailure("Quote response contains no usable quotes")
    return quotes


class QuoteAgent:
    """
    Fetches quote cards for the wall.

    Args:
        settings: Gemini settings (defaults to the global settings)
        model: Pre-built model exposing generate_content_async;
               when given, genai is not configured at all
        audit_logger: Receives external service errors
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model=None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._audit = audit_logger or AuditLogger()
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=QUOTE_SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    def _prompt(self) -> str:
        return f"""Please list {self._settings.quote_count} distinct, impactful, and inspiring quotes from the book 'A Dog Named Money' (小狗钱钱) by Bodo Schäfer.
Return the response in Chinese.
Ensure the quotes cover different aspects like saving, compound interest, dreams, and confidence.
The interpretation should be practical and encouraging.

Respond with ONLY a JSON array of objects in this exact format:
[{{"text": "quote in Chinese", "category": "储蓄 / 投资 / 心态 ...", "interpretation": "brief, inspiring interpretation"}}]"""

    async def _fetch_once(self) -> list[Quote]:
        try:
            response = await self._model.generate_content_async(self._prompt())
            text = response.text
        except Exception as e:
            raise ExternalServiceFailure(str(e)) from e
        return parse_quotes(text or "", now_millis())

    async def fetch_quotes(self) -> list[Quote]:
        """Fresh quotes, or the bundled ones if Gemini is unavailable."""
        try:
            async for attempt in _retrying(self._settings.retry_attempts):
                with attempt:
                    return await self._fetch_once()
        except ExternalServiceFailure as e:
            self._audit.log_external_service_error(service="gemini_quotes", error_message=str(e))
        return list(FALLBACK_QUOTES)


class ChatAgent:
    """
    Chat with Money the dog.

    History is passed in on every call; the agent itself keeps no state
    between messages.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model=None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._audit = audit_logger or AuditLogger()
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=CHAT_SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def _send_once(self, history: Sequence[ChatMessage], new_message: str) -> str:
        try:
            chat = self._model.start_chat(history=[
                {"role": message.role, "parts": [message.text]} for message in history
            ])
            response = await chat.send_message_async(new_message)
            text = response.text
        except Exception as e:
            raise ExternalServiceFailure(str(e)) from e
        if not text or not text.strip():
            raise ExternalServiceFailure("Empty chat response")
        return text.strip()

    async def send_message(self, history: Sequence[ChatMessage], new_message: str) -> str:
        """The dog's reply, or an apology if Gemini is unavailable."""
        try:
            async for attempt in _retrying(self._settings.retry_attempts):
                with attempt:
                    return await self._send_once(history, new_message)
        except ExternalServiceFailure as e:
            self._audit.log_external_service_error(service="gemini_chat", error_message=str(e))
        return CHAT_APOLOGY
