"""
geminichat: a terminal chat front end for Gemini and OpenAI-compatible models.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision:
- llm: which remote service answers and how its errors are classified
- conversation: how the transcript and its loading/error status evolve
- ui / cli: how states are shown to the user
"""

__version__ = "0.1.0"

from .conversation import ConversationController, ConversationState, ConversationStatus
from .llm import (
    AuthError,
    CompletionClient,
    EmptyResponseError,
    Message,
    NetworkError,
    RemoteError,
    ServiceError,
    create_completion_client,
)

__all__ = [
    "AuthError",
    "CompletionClient",
    "ConversationController",
    "ConversationState",
    "ConversationStatus",
    "EmptyResponseError",
    "Message",
    "NetworkError",
    "RemoteError",
    "ServiceError",
    "create_completion_client",
]
