"""Conversion between mention markup and (plain text, spans)."""

import logging
from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass

from .models import MentionObject
from .models import MentionSpan
from .models import Segment
from .syntax import SyntaxRegistry

logger = logging.getLogger(__name__)

MentionLookup = Callable[[str], MentionObject | None]


@dataclass(frozen=True)
class DecodedMarkup:
    """Result of decoding markup: the visible text and its mention spans."""

    text: str
    spans: list[MentionSpan]


def decode_markup(markup: str, registry: SyntaxRegistry, lookup: MentionLookup) -> DecodedMarkup:
    """Decode markup into plain text plus ordered mention spans.

    Every well-formed mention (e.g. ``<###@42###>``) is replaced with its
    starting character and display name (``@Amber``). Ids the lookup cannot
    resolve use the syntax's ``missing_text`` but keep their id, so encoding
    again preserves them. Malformed markup is copied through as text.

    Args:
        markup: Text containing mention markup
        registry: Syntaxes to recognize
        lookup: Resolves a mention id to a MentionObject, or None if unknown

    Returns:
        DecodedMarkup with spans in output-text coordinates
    """
    parts: list[str] = []
    spans: list[MentionSpan] = []
    output_length = 0
    run_start = 0
    index = 0

    while index < len(markup):
        match = registry.match_at(markup, index)
        if match is None:
            index += 1
            continue

        # Flush the plain run before this mention
        run = markup[run_start:index]
        parts.append(run)
        output_length += len(run)

        mention = lookup(match.mention_id)
        if mention is None:
            logger.debug(f"Mention id not found, using missing text: {match.mention_id}")
        display_name = mention.display_name if mention is not None else match.syntax.missing_text

        span = MentionSpan(
            id=match.mention_id,
            display_name=display_name,
            start=output_length,
            end=output_length + 1 + len(display_name),
            syntax=match.syntax,
        )
        spans.append(span)
        parts.append(span.display_text)
        output_length = span.end

        index += match.length
        run_start = index

    parts.append(markup[run_start:])
    return DecodedMarkup(text="".join(parts), spans=spans)


def encode_markup(text: str, spans: Sequence[MentionSpan]) -> str:
    """Encode plain text and its ordered spans back into markup.

    Args:
        text: Plain buffer text
        spans: Non-overlapping spans, ascending by start

    Returns:
        Markup with each span's visible run replaced by its markup form
    """
    parts: list[str] = []
    run_start = 0

    for span in spans:
        parts.append(text[run_start : span.start])
        syntax = span.syntax
        parts.append(f"{syntax.prefix}{syntax.starting_character}{span.id}{syntax.suffix}")
        run_start = span.end

    parts.append(text[run_start:])
    return "".join(parts)


def split_segments(text: str, spans: Sequence[MentionSpan]) -> list[Segment]:
    """Split the buffer into alternating plain and mention runs for rendering."""
    segments: list[Segment] = []
    run_start = 0

    for span in spans:
        if span.start != run_start:
            segments.append(Segment(kind="plain", text=text[run_start : span.start]))
        segments.append(Segment(kind="mention", text=text[span.start : span.end], span=span))
        run_start = span.end

    if run_start < len(text):
        segments.append(Segment(kind="plain", text=text[run_start:]))
    return segments
