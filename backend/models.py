"""
Data models for the newsletter subscription service.

Raw form input is parsed into these types before anything touches the
database or the email provider.
"""
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field


class SubscriberValidationError(ValueError):
    """Raised when a submitted field is not acceptable."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class SubscriberEmail(str):
    """A syntactically valid, lower-cased email address."""

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SubscriberEmail":
        if raw is None or not raw.strip():
            raise SubscriberValidationError("email", "is empty")

        try:
            validated = validate_email(raw.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            raise SubscriberValidationError("email", f"{raw!r} is not a valid email address ({e})")

        return cls(validated.normalized.lower())


class SubscriberName(str):
    """A display name that is safe to embed in emails and HTML."""

    MAX_LENGTH = 256
    FORBIDDEN_CHARACTERS = frozenset('/()"<>\\{}')

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SubscriberName":
        """
        Parse a subscriber name.

        Rejects empty or whitespace-only names, names longer than
        MAX_LENGTH code points after NFC normalization, and names
        containing control characters or any of FORBIDDEN_CHARACTERS.
        """
        if raw is None or not raw.strip():
            raise SubscriberValidationError("name", "is empty")

        name = unicodedata.normalize("NFC", raw.strip())

        if len(name) > cls.MAX_LENGTH:
            raise SubscriberValidationError(
                "name", f"is longer than {cls.MAX_LENGTH} characters"
            )

        for ch in name:
            if ch in cls.FORBIDDEN_CHARACTERS:
                raise SubscriberValidationError("name", f"contains forbidden character {ch!r}")
            if unicodedata.category(ch) == "Cc":
                raise SubscriberValidationError("name", "contains a control character")

        return cls(name)


class NewSubscriber(BaseModel):
    """A validated subscription request, ready to be persisted."""
    email: str
    name: str
    # Generated here so the same id can be used for the token row
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    subscribed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_form(cls, name: Optional[str], email: Optional[str]) -> "NewSubscriber":
        """Parse raw form fields, raising SubscriberValidationError on bad input."""
        return cls(
            email=SubscriberEmail.parse(email),
            name=SubscriberName.parse(name),
        )
