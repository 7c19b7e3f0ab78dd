"""prompt_toolkit integration: drives a MentionController from a Buffer."""

import logging
from collections.abc import Mapping

from prompt_toolkit import PromptSession
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.key_binding import KeyBindings

from .controller import MentionController
from .events import BufferChanged
from .events import MentionEvent
from .models import MentionObject
from .models import MentionSyntax

logger = logging.getLogger(__name__)


class MentionBufferBinding:
    """Keeps a prompt_toolkit Buffer and a MentionController in sync.

    Every change to the buffer is reported to the controller as a user edit.
    When the controller rewrites the text itself (mention committed or
    removed), the new text and caret are written back into the buffer; the
    resulting change event carries the text the controller already has, so
    it is a no-op.
    """

    def __init__(self, controller: MentionController, buffer: Buffer):
        self.controller = controller
        self.buffer = buffer
        buffer.on_text_changed += self._on_text_changed
        controller.event_bus.subscribe(self._on_controller_event)

    def detach(self) -> None:
        """Stop syncing the buffer and the controller."""
        self.buffer.on_text_changed -= self._on_text_changed
        self.controller.event_bus.unsubscribe(self._on_controller_event)

    def commit(self, mention: MentionObject) -> None:
        """Commit ``mention`` in place of the token being composed."""
        self.controller.commit_mention(mention)

    def _on_text_changed(self, buffer: Buffer) -> None:
        self.controller.apply_edit(buffer.text)

    def _on_controller_event(self, event: MentionEvent) -> None:
        if not isinstance(event, BufferChanged) or event.source != "programmatic":
            return
        if event.text == self.buffer.text:
            return

        caret = event.caret if event.caret is not None else min(self.buffer.cursor_position, len(event.text))
        logger.debug(f"Syncing buffer to controller text, caret at {caret}")
        self.buffer.set_document(Document(event.text, caret), bypass_readonly=True)


def find_candidates(
    mentions: Mapping[str, MentionObject],
    syntax: MentionSyntax | None,
    search: str,
) -> list[MentionObject]:
    """Known mentions whose display name starts with ``search`` (case-insensitive)."""
    if syntax is None:
        return []
    needle = search.lower()
    return [mention for mention in mentions.values() if mention.display_name.lower().startswith(needle)]


def create_prompt_session(
    controller: MentionController,
    mentions: Mapping[str, MentionObject],
) -> tuple[PromptSession, MentionBufferBinding]:
    """Create a PromptSession whose buffer is bound to ``controller``.

    Provides:
    - Bottom toolbar with the live search text and matching mentions
    - Tab commits the first matching mention
    - Ctrl-J inserts a newline, Enter submits

    Returns:
        (session, binding) tuple
    """
    kb = KeyBindings()

    @kb.add("tab")
    def complete_mention(event):
        """Commit the first mention matching the current search text."""
        candidates = find_candidates(mentions, controller.get_search_syntax(), controller.get_search_text())
        if candidates:
            binding.commit(candidates[0])

    @kb.add("c-j")  # Ctrl-J inserts newline (terminal-reliable)
    def insert_newline(event):
        """Insert newline character for multi-line input."""
        event.current_buffer.insert_text("\n")

    @kb.add("enter")
    def accept_input(event):
        """Submit input on Enter."""
        event.current_buffer.validate_and_handle()

    def toolbar():
        syntax = controller.get_search_syntax()
        if syntax is None:
            return HTML("<b>{}</b> mention(s) - type {} to mention").format(len(controller.spans), _triggers(controller))
        search = controller.get_search_text()
        names = ", ".join(m.display_name for m in find_candidates(mentions, syntax, search)[:5]) or "no matches"
        return HTML("{}<b>{}</b>: {} (Tab to insert)").format(syntax.starting_character, search, names)

    session: PromptSession = PromptSession(
        message=HTML("<ansigreen><b>></b></ansigreen> "),
        key_bindings=kb,
        multiline=True,
        validate_while_typing=False,
        prompt_continuation="  ",
        bottom_toolbar=toolbar,
    )
    binding = MentionBufferBinding(controller, session.default_buffer)
    return session, binding


def _triggers(controller: MentionController) -> str:
    return " or ".join(syntax.starting_character for syntax in controller.registry)
