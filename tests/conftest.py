"""Shared fixtures for mention-markup tests."""

import pytest
from mention_markup.models import MentionObject
from mention_markup.models import MentionSpan
from mention_markup.models import MentionSyntax
from mention_markup.syntax import SyntaxRegistry


@pytest.fixture
def at_syntax():
    return MentionSyntax(starting_character="@", missing_text="Unknown")


@pytest.fixture
def hash_syntax():
    return MentionSyntax(starting_character="#", missing_text="missing-tag", prefix="[[", suffix="]]", pattern="[a-z-]+")


@pytest.fixture
def registry(at_syntax, hash_syntax):
    return SyntaxRegistry([at_syntax, hash_syntax])


@pytest.fixture
def people():
    return {
        "1": MentionObject(id="1", display_name="Al"),
        "7": MentionObject(id="7", display_name="Bob"),
        "42": MentionObject(id="42", display_name="Amber", avatar_url="https://example.com/amber.png"),
    }


@pytest.fixture
def lookup(people):
    return people.get


def _make_span(syntax: MentionSyntax, mention_id: str, display_name: str, start: int) -> MentionSpan:
    return MentionSpan(
        id=mention_id,
        display_name=display_name,
        start=start,
        end=start + 1 + len(display_name),
        syntax=syntax,
    )


def _assert_span_invariants(text: str, spans) -> None:
    for span in spans:
        assert text[span.start : span.end] == span.display_text
    for before, after in zip(spans, spans[1:]):
        assert before.start < after.start
        assert before.end <= after.start


@pytest.fixture
def make_span():
    """Build a span for a display name starting at a given offset."""
    return _make_span


@pytest.fixture
def check_spans():
    """Assert spans are sorted, non-overlapping and show their display text."""
    return _assert_span_invariants
