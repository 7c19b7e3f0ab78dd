"""Mention controller: owns the buffer, its mention spans and the composition session."""

import logging
from collections.abc import Callable
from collections.abc import Sequence
from enum import Enum

from .composition import CANCELLED
from .composition import CompositionChange
from .composition import CompositionStep
from .composition import advance_composition
from .composition import search_text
from .diffing import compute_diff
from .errors import PreconditionError
from .events import BufferChanged
from .events import CompositionChanged
from .events import EventBus
from .events import MentionEvent
from .markup import MentionLookup
from .markup import decode_markup
from .markup import encode_markup
from .markup import split_segments
from .models import CompositionSession
from .models import MentionObject
from .models import MentionSpan
from .models import MentionSyntax
from .models import Segment
from .reconciler import reconcile_spans
from .syntax import SyntaxRegistry

logger = logging.getLogger(__name__)

CompositionCallback = Callable[[MentionSyntax | None, str | None], None]


class EditSource(str, Enum):
    """Who changed the buffer.

    User edits may invalidate mentions and drive composition. Programmatic
    edits (made by the controller itself or by a host restoring state) only
    move existing spans.
    """

    USER = "user"
    PROGRAMMATIC = "programmatic"


class MentionController:
    """Tracks mentions in a plain-text buffer while it is edited.

    The host text widget reports every change through ``apply_edit``. When
    the controller has to rewrite the buffer itself (removing a mention the
    user typed into, or committing a mention), it publishes a
    ``BufferChanged`` event with ``source="programmatic"`` and a caret hint,
    and the host copies ``text`` back into its widget.

    Example:
        >>> controller = MentionController([MentionSyntax(starting_character="@", missing_text="Unknown")])
        >>> controller.apply_edit("Hello ")
        True
        >>> controller.apply_edit("Hello @")
        True
        >>> controller.apply_edit("Hello @a")
        True
        >>> controller.get_search_text()
        'a'
        >>> controller.commit_mention(MentionObject(id="42", display_name="Amber"))
        >>> controller.export_markup()
        'Hello <###@42###>'
    """

    def __init__(
        self,
        syntaxes: Sequence[MentionSyntax] | SyntaxRegistry,
        *,
        on_composition_changed: CompositionCallback | None = None,
        event_bus: EventBus | None = None,
        text: str = "",
    ) -> None:
        """Initialize controller.

        Args:
            syntaxes: Mention syntaxes, each with a distinct starting character
            on_composition_changed: Called with (syntax, search_text) whenever
                composition starts, changes or ends ((None, None) on end)
            event_bus: Bus to publish events on (default: a private bus)
            text: Initial buffer text, processed like a user edit
        """
        self.registry = syntaxes if isinstance(syntaxes, SyntaxRegistry) else SyntaxRegistry(list(syntaxes))
        self.event_bus = event_bus or EventBus()
        self._text = ""
        self._spans: list[MentionSpan] = []
        self._session: CompositionSession | None = None
        self.caret: int | None = None

        if on_composition_changed is not None:
            self.event_bus.subscribe(_composition_forwarder(on_composition_changed))

        if text:
            self.apply_edit(text)

    @property
    def text(self) -> str:
        return self._text

    @property
    def spans(self) -> tuple[MentionSpan, ...]:
        """Current mention spans, ascending by start."""
        return tuple(self._spans)

    @property
    def composition(self) -> CompositionSession | None:
        return self._session

    def is_composing(self) -> bool:
        return self._session is not None

    def get_search_text(self) -> str:
        """Search text of the mention being composed, without its starting character.

        Returns:
            e.g. "Amb" while "@Amb" is being typed, "" when not composing
        """
        return search_text(self._session, self._text)

    def get_search_syntax(self) -> MentionSyntax | None:
        """Syntax of the mention being composed, or None."""
        return self._session.syntax if self._session is not None else None

    def load_markup(self, markup: str, lookup: MentionLookup) -> None:
        """Replace the buffer with decoded markup.

        Args:
            markup: Text containing mention markup (e.g. "Hi <###@42###>")
            lookup: Resolves mention ids to MentionObjects
        """
        decoded = decode_markup(markup, self.registry, lookup)
        if self._session is not None:
            self.cancel_composition()

        self._text = decoded.text
        self._spans = decoded.spans
        self.caret = None
        logger.debug(f"Loaded markup with {len(decoded.spans)} mention(s)")
        self._publish(BufferChanged(text=self._text, source=EditSource.PROGRAMMATIC.value))

    def export_markup(self) -> str:
        """Encode the buffer and its mentions back into markup."""
        return encode_markup(self._text, self._spans)

    def segments(self) -> list[Segment]:
        """Plain and mention runs of the buffer, in order."""
        return split_segments(self._text, self._spans)

    def apply_edit(self, new_text: str, source: EditSource | str = EditSource.USER) -> bool:
        """Process a buffer change.

        Args:
            new_text: Full buffer text after the change
            source: USER for typing/pasting, PROGRAMMATIC for replacements
                that must not be read as typing ("user" and "programmatic"
                are accepted too)

        Returns:
            False if the text did not change, True otherwise

        Raises:
            PreconditionError: If composition state no longer matches the
                buffer (nothing is modified in that case)
            ValueError: If ``source`` names no EditSource
        """
        source = EditSource(source)
        if new_text == self._text:
            return False

        if source is EditSource.PROGRAMMATIC:
            self._apply_programmatic(new_text)
            return True

        old_text = self._text
        diff = compute_diff(old_text, new_text)
        result = reconcile_spans(diff, self._spans, old_text, new_text)
        session_broken = self._removal_breaks_session(result.removed)

        if result.excision is not None:
            # An edit inside a mention removes the whole mention instead
            logger.debug(f"Removing mention '{result.excision.span.id}' edited by user")
            if session_broken:
                self.cancel_composition()
            remaining = [span for span in self._spans if not any(span is gone for gone in result.removed)]
            self._spans = remaining
            self._apply_programmatic(result.excision.text, caret=result.excision.caret)
            return True

        if session_broken:
            step = CompositionStep(session=None, changes=[CANCELLED])
        elif result.mention_removed:
            step = CompositionStep(session=self._session)
        else:
            step = advance_composition(self._session, diff, new_text, self.registry)

        self._text = new_text
        self._spans = result.spans
        self._session = step.session
        self.caret = None
        self._publish(BufferChanged(text=new_text, source=source.value))
        self._publish_composition(step.changes)
        return True

    def commit_mention(self, mention: MentionObject) -> None:
        """Replace the mention being composed with a resolved mention.

        Args:
            mention: The chosen mention target

        Raises:
            PreconditionError: If not composing, or the id doesn't fit the syntax
        """
        session = self._session
        if session is None:
            raise PreconditionError("Cannot commit a mention while not composing")

        syntax = session.syntax
        if not self.registry.is_valid_id(syntax, mention.id):
            raise PreconditionError(f"Mention id {mention.id!r} does not match pattern {syntax.pattern!r}")

        display_text = f"{syntax.starting_character}{mention.display_name}"
        start = session.start_index
        new_text = self._text[:start] + display_text + self._text[session.end_index :]
        span = MentionSpan(
            id=mention.id,
            display_name=mention.display_name,
            start=start,
            end=start + len(display_text),
            syntax=syntax,
        )

        self.cancel_composition()
        self._apply_programmatic(new_text, added=span, caret=span.end)
        logger.debug(f"Committed mention '{mention.id}' at {span.start}:{span.end}")

    def cancel_composition(self) -> None:
        """End the current composition session and notify listeners."""
        self._session = None
        self._publish_composition([CANCELLED])

    def _removal_breaks_session(self, removed: list[MentionSpan]) -> bool:
        """Whether removing ``removed`` moves text the composition session points at."""
        session = self._session
        return session is not None and any(span.start < session.end_index for span in removed)

    def _apply_programmatic(
        self,
        new_text: str,
        *,
        added: MentionSpan | None = None,
        caret: int | None = None,
    ) -> None:
        old_text = self._text
        result = reconcile_spans(compute_diff(old_text, new_text), self._spans, old_text, new_text, check_removal=False)
        spans = result.spans
        if added is not None:
            spans = sorted([*spans, added], key=lambda span: span.start)

        self._text = new_text
        self._spans = spans
        self.caret = caret
        self._publish(BufferChanged(text=new_text, source=EditSource.PROGRAMMATIC.value, caret=caret))

    def _publish_composition(self, changes: list[CompositionChange]) -> None:
        for syntax, text in changes:
            self._publish(CompositionChanged(syntax=syntax, search_text=text))

    def _publish(self, event: MentionEvent) -> None:
        self.event_bus.publish(event)


def _composition_forwarder(callback: CompositionCallback) -> Callable[[MentionEvent], None]:
    def forward(event: MentionEvent) -> None:
        if isinstance(event, CompositionChanged):
            callback(event.syntax, event.search_text)

    forward.__name__ = getattr(callback, "__name__", "on_composition_changed")
    return forward
