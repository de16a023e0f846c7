"""Conversation state as a tagged variant.

Hides how the four conversation phases are represented. A state is one
frozen value: a ``status`` tag plus the payload that tag allows. Observers
switch on the tag instead of on a class hierarchy:

    match state.status:
        case ConversationStatus.IDLE: ...
        case ConversationStatus.PENDING: ...
        case ConversationStatus.SETTLED: ...
        case ConversationStatus.FAILED: ...

The history payload is a tuple, so nothing handed to an observer can be used
to change the controller's transcript.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..llm.models import Message


class ConversationStatus(str, Enum):
    """Tag of a conversation state."""

    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"
    FAILED = "failed"


class ConversationState(BaseModel):
    """Snapshot of a conversation at one observable instant.

    Attributes:
        status: Which phase the conversation is in.
        history: Ordered messages, oldest first. Empty only when idle.
        error_message: Human-readable failure, present only when failed.
    """

    model_config = ConfigDict(frozen=True)

    status: ConversationStatus
    history: tuple[Message, ...] = Field(default_factory=tuple)
    error_message: str | None = None

    @model_validator(mode="after")
    def check_payload(self) -> "ConversationState":
        """Reject payloads the tag does not allow."""
        if self.status is ConversationStatus.IDLE and self.history:
            raise ValueError("idle state cannot carry history")
        if self.status is not ConversationStatus.IDLE and not self.history:
            raise ValueError(f"{self.status.value} state requires history")
        if self.status is ConversationStatus.FAILED:
            if not self.error_message or not self.error_message.strip():
                raise ValueError("failed state requires an error message")
        elif self.error_message is not None:
            raise ValueError(f"{self.status.value} state cannot carry an error message")
        return self

    @classmethod
    def idle(cls) -> "ConversationState":
        """Initial state: no history yet."""
        return cls(status=ConversationStatus.IDLE)

    @classmethod
    def pending(cls, history: tuple[Message, ...]) -> "ConversationState":
        """A request is in flight; history ends with the user's message."""
        return cls(status=ConversationStatus.PENDING, history=tuple(history))

    @classmethod
    def settled(cls, history: tuple[Message, ...]) -> "ConversationState":
        """Last exchange completed; history ends with the assistant reply."""
        return cls(status=ConversationStatus.SETTLED, history=tuple(history))

    @classmethod
    def failed(cls, history: tuple[Message, ...], error_message: str) -> "ConversationState":
        """Last exchange failed; the unanswered user message is kept."""
        return cls(
            status=ConversationStatus.FAILED,
            history=tuple(history),
            error_message=error_message
        )

    @property
    def is_idle(self) -> bool:
        return self.status is ConversationStatus.IDLE

    @property
    def is_pending(self) -> bool:
        return self.status is ConversationStatus.PENDING

    @property
    def is_settled(self) -> bool:
        return self.status is ConversationStatus.SETTLED

    @property
    def is_failed(self) -> bool:
        return self.status is ConversationStatus.FAILED

    @property
    def last_message(self) -> Message | None:
        """Most recent message, or None when idle."""
        return self.history[-1] if self.history else None
