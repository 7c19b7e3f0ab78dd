"""Character diff between two buffer states, built on diff-match-patch."""

from collections.abc import Iterator
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from diff_match_patch import diff_match_patch


class Operation(Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


_OPERATIONS = {
    diff_match_patch.DIFF_EQUAL: Operation.EQUAL,
    diff_match_patch.DIFF_INSERT: Operation.INSERT,
    diff_match_patch.DIFF_DELETE: Operation.DELETE,
}


@dataclass(frozen=True)
class DiffOp:
    """One unit of the edit sequence between two texts."""

    operation: Operation
    text: str

    @property
    def length(self) -> int:
        return len(self.text)


def compute_diff(old_text: str, new_text: str) -> list[DiffOp]:
    """Diff two buffer states.

    Equal + insert texts, in order, rebuild ``new_text``; equal + delete
    texts rebuild ``old_text``.

    Examples:
        >>> [(op.operation.value, op.text) for op in compute_diff("Hi", "Hi!")]
        [('equal', 'Hi'), ('insert', '!')]
    """
    dmp = diff_match_patch()
    return [DiffOp(_OPERATIONS[op], text) for op, text in dmp.diff_main(old_text, new_text)]


def walk_diff(diff: Sequence[DiffOp]) -> Iterator[tuple[int, DiffOp]]:
    """Yield ``(cursor, op)`` pairs with the cursor each op is evaluated at.

    The cursor starts at 0, moves forward by the length of equal and insert
    texts and back by the length of deleted texts.
    """
    cursor = 0
    for op in diff:
        yield cursor, op
        if op.operation is Operation.DELETE:
            cursor -= op.length
        else:
            cursor += op.length
