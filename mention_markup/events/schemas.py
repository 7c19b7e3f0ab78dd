"""Event schemas published by the mention controller."""

from typing import Literal

from pydantic import BaseModel
from pydantic import Field

from mention_markup.models import MentionSyntax


class CompositionChanged(BaseModel):
    """Composition session started, changed, or ended.

    Both fields are None when composition was cancelled or committed.
    """

    type: Literal["composition_changed"] = "composition_changed"
    syntax: MentionSyntax | None = Field(default=None, description="Syntax being composed")
    search_text: str | None = Field(default=None, description="Current search text")


class BufferChanged(BaseModel):
    """Buffer text accepted by the controller."""

    type: Literal["buffer_changed"] = "buffer_changed"
    text: str = Field(description="Buffer text after the edit")
    source: Literal["user", "programmatic"] = Field(description="Who made the edit")
    caret: int | None = Field(default=None, description="Suggested caret offset, if any")


MentionEvent = CompositionChanged | BufferChanged
