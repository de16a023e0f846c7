"""Conversation state machine for geminichat.

Owns the ordered message history of one chat session and publishes every
state transition to its observers.
"""

from .controller import ConversationController, Listener
from .state import ConversationState, ConversationStatus

__all__ = [
    "ConversationController",
    "ConversationState",
    "ConversationStatus",
    "Listener",
]
