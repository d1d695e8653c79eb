"""AI Agents package."""

from moneys_wisdom.agents.ai_agents import (
    CHAT_APOLOGY,
    FALLBACK_QUOTES,
    ChatAgent,
    ChatMessage,
    ExternalServiceFailure,
    Quote,
    QuoteAgent,
)

__all__ = [
    "CHAT_APOLOGY",
    "FALLBACK_QUOTES",
    "ChatAgent",
    "ChatMessage",
    "ExternalServiceFailure",
    "Quote",
    "QuoteAgent",
]
