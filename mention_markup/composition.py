"""Composition session: tracks a mention while it is being typed."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field

from .diffing import DiffOp
from .diffing import Operation
from .diffing import walk_diff
from .errors import PreconditionError
from .models import CompositionSession
from .models import MentionSyntax
from .syntax import SyntaxRegistry

logger = logging.getLogger(__name__)

# (syntax, search text); (None, None) means composition ended
CompositionChange = tuple[MentionSyntax | None, str | None]

CANCELLED: CompositionChange = (None, None)


@dataclass(frozen=True)
class CompositionStep:
    """Session after an edit, plus the notifications the edit produced."""

    session: CompositionSession | None
    changes: list[CompositionChange] = field(default_factory=list)


def search_text(session: CompositionSession | None, text: str) -> str:
    """Text typed after the starting character (``@Amb`` -> ``Amb``)."""
    if session is None:
        return ""
    return text[session.start_index + 1 : session.end_index]


def advance_composition(
    session: CompositionSession | None,
    diff: Sequence[DiffOp],
    text: str,
    registry: SyntaxRegistry,
) -> CompositionStep:
    """Run the composition state machine over one edit.

    Inserting a registered starting character starts composing; typing at
    the end of the token extends it; a space or an insert anywhere else
    cancels. Deleting the starting character cancels; deleting inside the
    token shrinks it.

    Args:
        session: Session before the edit, or None
        diff: Diff from the previous buffer to ``text``
        text: Buffer after the edit
        registry: Registered syntaxes

    Returns:
        CompositionStep with the new session and emitted notifications

    Raises:
        PreconditionError: If a deletion would shrink the token below its
            starting character
    """
    changes: list[CompositionChange] = []

    for cursor, op in walk_diff(diff):
        if op.operation is Operation.INSERT:
            if session is None:
                syntax = registry.for_trigger(op.text)
                if syntax is not None:
                    session = CompositionSession(start_index=cursor, length=1, syntax=syntax)
                    logger.debug(f"Composing '{syntax.starting_character}' mention at {cursor}")
                    changes.append((syntax, syntax.starting_character))
            elif op.text == " ":
                # Spaces always end a mention
                session = None
                changes.append(CANCELLED)
            elif cursor == session.end_index:
                session = session.model_copy(update={"length": session.length + op.length})
                changes.append((session.syntax, search_text(session, text)))
            else:
                session = None
                changes.append(CANCELLED)

        elif op.operation is Operation.DELETE and session is not None:
            range_end = cursor + op.length
            if session.syntax.starting_character in op.text and cursor <= session.start_index:
                session = None
                changes.append(CANCELLED)
            elif range_end <= session.start_index or cursor >= session.end_index:
                continue
            elif cursor < session.start_index:
                session = None
                changes.append(CANCELLED)
            else:
                overlap = min(range_end, session.end_index) - cursor
                length = session.length - overlap
                if length < 1:
                    raise PreconditionError(
                        f"Composed mention at {session.start_index} would shrink to length {length}"
                    )
                session = session.model_copy(update={"length": length})
                changes.append((session.syntax, search_text(session, text)))

    if changes and session is None:
        logger.debug("Composition cancelled")
    return CompositionStep(session=session, changes=changes)
