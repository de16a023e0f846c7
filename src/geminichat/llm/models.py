from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A single utterance in a conversation.

    Messages are immutable; edits are expressed by appending new messages.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Message content, may contain markdown")
    is_user: bool = Field(description="True if authored by the end user")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="Creation time in UTC"
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject blank text; non-blank text is kept verbatim."""
        if not v or not v.strip():
            raise ValueError("Message text must not be empty")
        return v

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Require an aware datetime and normalize it to UTC."""
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("Message timestamp must be timezone-aware")
        return v.astimezone(timezone.utc)

    @property
    def role(self) -> str:
        """Role name used by chat APIs: 'user' or 'assistant'."""
        return "user" if self.is_user else "assistant"

    @classmethod
    def user(cls, text: str, timestamp: datetime | None = None) -> "Message":
        """Create a message authored by the end user."""
        if timestamp is None:
            return cls(text=text, is_user=True)
        return cls(text=text, is_user=True, timestamp=timestamp)

    @classmethod
    def assistant(cls, text: str, timestamp: datetime | None = None) -> "Message":
        """Create a message authored by the assistant."""
        if timestamp is None:
            return cls(text=text, is_user=False)
        return cls(text=text, is_user=False, timestamp=timestamp)
