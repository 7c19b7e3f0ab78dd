"""Controller events: composition changes and buffer updates."""

from mention_markup.events.bus import EventBus
from mention_markup.events.schemas import BufferChanged
from mention_markup.events.schemas import CompositionChanged
from mention_markup.events.schemas import MentionEvent

__all__ = [
    "EventBus",
    "MentionEvent",
    "CompositionChanged",
    "BufferChanged",
]
