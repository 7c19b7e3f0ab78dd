"""Span reconciliation: keeps mention spans valid across buffer edits.

Given the diff between the previous and the current buffer, every span is
either kept, shifted to follow the text it annotates, or invalidated. Mentions
are atomic: an edit contained in a mention removes the whole mention
text rather than leaving a partial name behind.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .diffing import DiffOp
from .diffing import Operation
from .diffing import walk_diff
from .models import MentionSpan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Excision:
    """Replacement text produced when an edit lands inside a mention.

    Attributes:
        span: The invalidated span, with its bounds in the previous buffer
        text: Previous buffer with the span's run replaced by the inserted text
        caret: Where the host should place its caret afterwards
    """

    span: MentionSpan
    text: str
    caret: int


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation pass."""

    spans: list[MentionSpan]
    removed: list[MentionSpan]
    excision: Excision | None = None

    @property
    def mention_removed(self) -> bool:
        return bool(self.removed)


def is_stale(span: MentionSpan, text: str) -> bool:
    """Check whether ``text`` no longer shows the span's display text at its bounds."""
    if span.start < 0 or span.end > len(text):
        return True
    return text[span.start : span.end] != span.display_text


def _edit_range(op: DiffOp, cursor: int) -> tuple[int, int]:
    """Range an insert/delete at ``cursor`` is checked against spans with.

    A deletion covers ``[cursor, cursor + len)``. An insertion lands within a
    single new run, so it covers ``[cursor, cursor + len - 1)``.
    """
    if op.operation is Operation.INSERT:
        return cursor, cursor + op.length - 1
    return cursor, cursor + op.length


def _edit_hits(op: DiffOp, cursor: int, span: MentionSpan) -> tuple[bool, bool]:
    """Return ``(overlaps, contained)`` for an insert/delete at ``cursor``."""
    range_start, range_end = _edit_range(op, cursor)
    overlaps = range_start < span.end and range_end > span.start
    contained = overlaps and range_start >= span.start and range_end <= span.end
    return overlaps, contained


def _shift(span: MentionSpan, op: DiffOp, cursor: int, text: str) -> MentionSpan:
    if span.start < cursor or not is_stale(span, text):
        return span
    if op.operation is Operation.INSERT:
        return span.shifted(op.length)
    return span.shifted(-op.length)


def _excise(old_text: str, span: MentionSpan, op: DiffOp) -> Excision:
    replacement = op.text if op.operation is Operation.INSERT else ""
    return Excision(
        span=span,
        text=old_text[: span.start] + replacement + old_text[span.end :],
        caret=span.start,
    )


def reconcile_spans(
    diff: Sequence[DiffOp],
    spans: Sequence[MentionSpan],
    old_text: str,
    new_text: str,
    *,
    check_removal: bool = True,
) -> ReconcileResult:
    """Update spans for the edit described by ``diff``.

    For each insert or delete, spans touched by the edit are removed first;
    surviving spans at or after the edit point that no longer match the new
    text are then shifted by the edit length. Spans still out of sync after
    the whole diff are dropped.

    Args:
        diff: Diff from ``old_text`` to ``new_text``
        spans: Spans valid for ``old_text``, ascending by start
        old_text: Buffer before the edit
        new_text: Buffer after the edit
        check_removal: False for programmatic edits, which only shift spans

    Returns:
        ReconcileResult with the new span list, the invalidated spans and,
        when an edit landed inside a mention, the excision to apply
    """
    # (span as given, span as currently shifted)
    tracked = [(span, span) for span in spans]
    removed: list[MentionSpan] = []
    excision: Excision | None = None

    for cursor, op in walk_diff(diff):
        if op.operation is Operation.EQUAL:
            continue

        if check_removal:
            surviving = []
            for original, current in tracked:
                overlaps, contained = _edit_hits(op, cursor, current)
                if not overlaps:
                    surviving.append((original, current))
                    continue
                logger.debug(f"Mention '{original.id}' invalidated by {op.operation.value} at {cursor}")
                removed.append(original)
                if contained and excision is None:
                    excision = _excise(old_text, original, op)
            tracked = surviving

        tracked = [(original, _shift(current, op, cursor, new_text)) for original, current in tracked]

    result: list[MentionSpan] = []
    for _original, current in sorted(tracked, key=lambda pair: pair[1].start):
        if is_stale(current, new_text):
            logger.debug(f"Dropping out-of-sync mention '{current.id}' at {current.start}:{current.end}")
            continue
        if result and result[-1].overlaps(current):
            logger.debug(f"Dropping overlapping mention '{current.id}' at {current.start}:{current.end}")
            continue
        result.append(current)

    return ReconcileResult(spans=result, removed=removed, excision=excision)
