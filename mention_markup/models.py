"""Data models for mentions, spans and composition sessions."""

from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

DEFAULT_PREFIX = "<###"
DEFAULT_SUFFIX = "###>"
DEFAULT_PATTERN = "[a-zA-Z0-9]+"


class MentionSyntax(BaseModel):
    """How a mention is written in markup and how typing one is triggered.

    Final markup for a mention is prefix -> starting character -> id -> suffix,
    e.g. ``<###@42###>`` with the defaults.

    Attributes:
        starting_character: Single character that starts composing a mention (e.g. "@")
        missing_text: Display name used when the id can no longer be resolved
        prefix: Markup text written before the starting character
        suffix: Markup text written after the id
        pattern: Regular expression describing a valid id
    """

    model_config = ConfigDict(frozen=True)

    starting_character: str
    missing_text: str
    prefix: str = DEFAULT_PREFIX
    suffix: str = DEFAULT_SUFFIX
    pattern: str = DEFAULT_PATTERN

    @field_validator("starting_character")
    @classmethod
    def _single_character(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError(f"starting_character must be a single character, got {value!r}")
        return value

    @property
    def lead_character(self) -> str:
        """First character of this syntax's markup form."""
        return (self.prefix + self.starting_character)[0]


class MentionObject(BaseModel):
    """An externally supplied mention target.

    Extra keyword arguments are kept as metadata, so callers can attach
    whatever their lookup needs without subclassing.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Unique id, must match the syntax pattern")
    display_name: str = Field(description="Name shown in the buffer after the starting character")
    avatar_url: str | None = None


class MentionSpan(BaseModel):
    """A mention currently visible in the plain-text buffer.

    ``start``/``end`` are half-open offsets into the buffer. The span is valid
    while ``buffer[start:end] == display_text``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    start: int
    end: int
    syntax: MentionSyntax

    @property
    def display_text(self) -> str:
        return f"{self.syntax.starting_character}{self.display_name}"

    def shifted(self, delta: int) -> "MentionSpan":
        return self.model_copy(update={"start": self.start + delta, "end": self.end + delta})

    def overlaps(self, other: "MentionSpan") -> bool:
        return self.start < other.end and other.start < self.end


class CompositionSession(BaseModel):
    """A mention being typed but not yet committed."""

    model_config = ConfigDict(frozen=True)

    start_index: int
    length: int
    syntax: MentionSyntax

    @property
    def end_index(self) -> int:
        return self.start_index + self.length


class Segment(BaseModel):
    """One flat run of the buffer, either plain text or a mention."""

    kind: Literal["plain", "mention"]
    text: str
    span: MentionSpan | None = None
