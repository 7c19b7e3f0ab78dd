"""Syntax registry: matches mention markup at a given offset."""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from re import Pattern

from .models import MentionSyntax

logger = logging.getLogger(__name__)


@lru_cache(maxsize=64)
def _compile_id_pattern(pattern: str) -> Pattern:
    return re.compile(pattern)


@dataclass(frozen=True)
class MarkupMatch:
    """A mention found in markup text.

    Attributes:
        mention_id: The id between the starting character and the suffix
        length: Length of the full markup (prefix + trigger + id + suffix)
        syntax: Syntax that matched
    """

    mention_id: str
    length: int
    syntax: MentionSyntax


class SyntaxRegistry:
    """Holds the registered mention syntaxes.

    Each syntax should use a different starting character. Duplicates are
    not rejected; the syntax registered first wins.
    """

    def __init__(self, syntaxes: list[MentionSyntax]) -> None:
        self._syntaxes = list(syntaxes)
        self._lead_characters = {syntax.lead_character for syntax in self._syntaxes}

    def __iter__(self):
        return iter(self._syntaxes)

    def __len__(self) -> int:
        return len(self._syntaxes)

    def for_trigger(self, text: str) -> MentionSyntax | None:
        """Return the syntax whose starting character is exactly ``text``."""
        for syntax in self._syntaxes:
            if text == syntax.starting_character:
                return syntax
        return None

    def match_at(self, markup: str, offset: int) -> MarkupMatch | None:
        """Match mention markup starting exactly at ``offset``.

        Matching never searches to the left or right of ``offset``: the
        prefix and starting character must sit at ``offset``, followed by at
        least one id character and then the suffix.

        Args:
            markup: Markup text to inspect
            offset: Position the markup must start at

        Returns:
            MarkupMatch, or None when no syntax matches at this position
        """
        if offset >= len(markup) or markup[offset] not in self._lead_characters:
            return None

        for syntax in self._syntaxes:
            match = self._match_syntax(syntax, markup, offset)
            if match is not None:
                return match
        return None

    @staticmethod
    def _match_syntax(syntax: MentionSyntax, markup: str, offset: int) -> MarkupMatch | None:
        head = syntax.prefix + syntax.starting_character
        if not markup.startswith(head, offset):
            return None

        id_start = offset + len(head)
        id_match = _compile_id_pattern(syntax.pattern).match(markup, id_start)
        if id_match is None or id_match.end() == id_start:
            return None

        id_end = id_match.end()
        if not markup.startswith(syntax.suffix, id_end):
            logger.debug(f"Unterminated mention markup at offset {offset}")
            return None

        return MarkupMatch(
            mention_id=markup[id_start:id_end],
            length=id_end + len(syntax.suffix) - offset,
            syntax=syntax,
        )

    def is_valid_id(self, syntax: MentionSyntax, mention_id: str) -> bool:
        """Check ``mention_id`` fully matches the syntax's id pattern."""
        return _compile_id_pattern(syntax.pattern).fullmatch(mention_id) is not None
