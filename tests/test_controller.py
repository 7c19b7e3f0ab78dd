"""Tests for MentionController: editing sessions end to end."""

from unittest.mock import Mock

import pytest
from mention_markup.controller import EditSource
from mention_markup.controller import MentionController
from mention_markup.errors import PreconditionError
from mention_markup.events import BufferChanged
from mention_markup.events import CompositionChanged
from mention_markup.events import EventBus
from mention_markup.models import MentionObject


@pytest.fixture
def controller(registry):
    return MentionController(registry)


def _type(controller, text):
    """Type ``text`` one character at a time at the end of the buffer."""
    for character in text:
        controller.apply_edit(controller.text + character)


class TestLoadAndExport:
    def test_load_markup(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        assert controller.text == "Hi @Bob!"
        assert [(s.id, s.start, s.end) for s in controller.spans] == [("7", 3, 7)]

    def test_round_trip_preserves_ids_and_text(self, controller, lookup):
        markup = "<###@1###>, <###@42###> and <###@404###> :)"
        controller.load_markup(markup, lookup)
        assert controller.export_markup() == markup

    def test_spans_are_read_only(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        assert isinstance(controller.spans, tuple)

    def test_load_replaces_previous_state(self, controller, lookup):
        controller.load_markup("<###@7###>", lookup)
        controller.load_markup("plain", lookup)
        assert controller.spans == ()
        assert controller.export_markup() == "plain"

    def test_load_cancels_composition(self, registry, lookup):
        callback = Mock()
        controller = MentionController(registry, on_composition_changed=callback)
        controller.apply_edit("@")
        controller.load_markup("fresh", lookup)
        assert not controller.is_composing()
        callback.assert_called_with(None, None)

    def test_segments(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        assert [(s.kind, s.text) for s in controller.segments()] == [
            ("plain", "Hi "),
            ("mention", "@Bob"),
            ("plain", "!"),
        ]


class TestComposition:
    def test_trigger_then_search_then_space(self, registry, at_syntax):
        callback = Mock()
        controller = MentionController(registry, on_composition_changed=callback)

        controller.apply_edit("@")
        assert controller.is_composing()
        assert controller.get_search_text() == ""
        assert controller.get_search_syntax() == at_syntax

        controller.apply_edit("@am")
        assert controller.get_search_text() == "am"

        controller.apply_edit("@am ")
        assert not controller.is_composing()
        assert controller.get_search_text() == ""
        assert controller.get_search_syntax() is None

        assert [c.args for c in callback.call_args_list] == [
            (at_syntax, "@"),
            (at_syntax, "am"),
            (None, None),
        ]

    def test_typing_character_by_character(self, controller):
        _type(controller, "Hey @Amb")
        assert controller.get_search_text() == "Amb"
        assert controller.composition.start_index == 4

    def test_cancel_composition(self, registry):
        callback = Mock()
        controller = MentionController(registry, on_composition_changed=callback)
        controller.apply_edit("@")
        controller.cancel_composition()
        assert not controller.is_composing()
        callback.assert_called_with(None, None)

    def test_initial_text_is_processed(self, registry):
        controller = MentionController(registry, text="@")
        assert controller.is_composing()

    def test_edit_inside_mention_does_not_start_composition(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        controller.apply_edit("Hi @B@ob!")
        assert not controller.is_composing()
        assert controller.text == "Hi @!"


class TestCommit:
    def test_commit_scenario(self, registry, at_syntax):
        callback = Mock()
        controller = MentionController(registry, on_composition_changed=callback)
        controller.apply_edit("Hello ")
        controller.apply_edit("Hello @")
        controller.apply_edit("Hello @a")
        assert (controller.composition.start_index, controller.composition.length) == (6, 2)

        controller.commit_mention(MentionObject(id="42", display_name="Amber"))

        assert controller.text == "Hello @Amber"
        assert [(s.id, s.start, s.end) for s in controller.spans] == [("42", 6, 12)]
        assert not controller.is_composing()
        assert controller.caret == 12
        assert controller.export_markup() == "Hello <###@42###>"
        callback.assert_called_with(None, None)

    def test_commit_before_existing_mention(self, controller, lookup, check_spans):
        controller.load_markup("<###@1###>", lookup)
        controller.apply_edit(" @Al")
        controller.apply_edit("@ @Al")
        controller.apply_edit("@b @Al")
        assert controller.get_search_text() == "b"
        assert [(s.start, s.end) for s in controller.spans] == [(3, 6)]

        controller.commit_mention(MentionObject(id="7", display_name="Bob"))

        assert controller.text == "@Bob @Al"
        check_spans(controller.text, controller.spans)
        assert [s.id for s in controller.spans] == ["7", "1"]
        assert controller.export_markup() == "<###@7###> <###@1###>"

    def test_commit_while_inactive_fails(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        with pytest.raises(PreconditionError):
            controller.commit_mention(MentionObject(id="42", display_name="Amber"))
        assert controller.text == "Hi @Bob!"
        assert len(controller.spans) == 1

    def test_commit_rejects_id_outside_pattern(self, controller):
        controller.apply_edit("@")
        with pytest.raises(PreconditionError):
            controller.commit_mention(MentionObject(id="not valid", display_name="Nope"))
        assert controller.is_composing()
        assert controller.text == "@"

    def test_commit_other_syntax(self, controller):
        _type(controller, "see #rel")
        controller.commit_mention(MentionObject(id="release-notes", display_name="release-notes"))
        assert controller.export_markup() == "see [[#release-notes]]"


class TestEditingMentions:
    def test_shift_on_insert_before(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        controller.apply_edit("Hey Hi @Bob!")
        assert [(s.start, s.end) for s in controller.spans] == [(7, 11)]
        assert controller.text[7:11] == "@Bob"

    def test_typing_inside_mention_removes_it(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        assert controller.apply_edit("Hi @Bxob!")
        assert controller.text == "Hi x!"
        assert controller.spans == ()
        assert controller.caret == 3
        assert "@B" not in controller.text

    def test_backspace_into_mention_removes_it(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        controller.apply_edit("Hi @Bo!")
        assert controller.text == "Hi !"
        assert controller.export_markup() == "Hi !"

    def test_excision_shifts_later_mentions(self, controller, lookup, check_spans):
        controller.load_markup("<###@1###> and <###@7###>", lookup)
        controller.apply_edit("@Axl and @Bob")
        assert controller.text == "x and @Bob"
        assert [(s.id, s.start, s.end) for s in controller.spans] == [("7", 6, 10)]
        check_spans(controller.text, controller.spans)

    def test_delete_across_boundary_drops_mention(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        controller.apply_edit("Hi @B")
        assert controller.text == "Hi @B"
        assert controller.spans == ()
        assert not controller.is_composing()

    def test_unchanged_text_is_ignored(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        assert controller.apply_edit("Hi @Bob!") is False

    def test_programmatic_edit_never_invalidates(self, controller, lookup):
        controller.load_markup("Hi <###@7###>!", lookup)
        controller.apply_edit("Hey Hi @Bob!", source=EditSource.PROGRAMMATIC)
        assert [(s.start, s.end) for s in controller.spans] == [(7, 11)]

    def test_programmatic_edit_does_not_compose(self, controller):
        controller.apply_edit("@", source=EditSource.PROGRAMMATIC)
        assert not controller.is_composing()

    def test_source_may_be_given_as_string(self, controller):
        controller.apply_edit("@", source="programmatic")
        assert not controller.is_composing()
        controller.apply_edit("@@", source="user")
        assert controller.is_composing()

    def test_unknown_source_is_rejected(self, controller):
        with pytest.raises(ValueError):
            controller.apply_edit("@", source="robot")
        assert controller.text == ""

    def test_invariants_hold_over_an_editing_session(self, controller, lookup, check_spans):
        controller.load_markup("<###@1###> met <###@7###> and <###@42###>", lookup)
        edits = [
            "@Al met @Bob and @Amber!",
            "@Al met @Bob, and @Amber!",
            "@Al met @Bob, and @Ambr!",
            "@Al met @Bob, and @!",
            "@Al met @Bob, and @A!",
            "@Al met , and @A!",
        ]
        for text in edits:
            controller.apply_edit(text)
            check_spans(controller.text, controller.spans)

        assert controller.text == "@Al met , and @A!"
        assert [s.id for s in controller.spans] == ["1"]
        assert not controller.is_composing()
        assert controller.export_markup() == "<###@1###> met , and @A!"

class TestRemovalWhileComposing:
    """Removing a mention in front of the token being composed cancels it."""

    def test_typing_inside_earlier_mention(self, registry, lookup):
        callback = Mock()
        controller = MentionController(registry, on_composition_changed=callback)
        controller.load_markup("Hi <###@7###> ", lookup)
        _type(controller, "@am")
        assert controller.composition.start_index == 8

        controller.apply_edit("Hi @Bxob @am")

        assert controller.text == "Hi x @am"
        assert not controller.is_composing()
        assert controller.get_search_text() == ""
        callback.assert_called_with(None, None)

    def test_delete_across_earlier_mention_boundary(self, registry, lookup):
        controller = MentionController(registry)
        controller.load_markup("Hi <###@7###> ", lookup)
        _type(controller, "@a")

        controller.apply_edit("Hi @B@a")

        assert controller.text == "Hi @B@a"
        assert controller.spans == ()
        assert not controller.is_composing()

    def test_mention_after_token_keeps_composition(self, registry, lookup, at_syntax):
        controller = MentionController(registry)
        controller.load_markup(" <###@7###>", lookup)
        controller.apply_edit("@ @Bob")
        assert controller.composition.start_index == 0

        controller.apply_edit("@ @Bxob")

        assert controller.text == "@ x"
        assert controller.composition.start_index == 0
        assert controller.get_search_syntax() == at_syntax



class TestEvents:
    def test_buffer_changed_events(self, registry, lookup):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        controller = MentionController(registry, event_bus=bus)

        controller.load_markup("Hi <###@7###>!", lookup)
        controller.apply_edit("Hi @Bxob!")

        buffer_events = [e for e in received if isinstance(e, BufferChanged)]
        assert [(e.source, e.text, e.caret) for e in buffer_events] == [
            ("programmatic", "Hi @Bob!", None),
            ("programmatic", "Hi x!", 3),
        ]

    def test_composition_events_on_bus(self, registry, at_syntax):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        controller = MentionController(registry, event_bus=bus)

        controller.apply_edit("@")

        assert CompositionChanged(syntax=at_syntax, search_text="@") in received
        assert BufferChanged(text="@", source="user") in received

    def test_failing_callback_does_not_break_editing(self, registry, caplog):
        def explode(syntax, search_text):
            raise RuntimeError("suggestion UI crashed")

        controller = MentionController(registry, on_composition_changed=explode)
        controller.apply_edit("@")
        assert controller.is_composing()
        assert "Error in event handler" in caplog.text
