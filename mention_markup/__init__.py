"""Mention tracking for plain-text editing buffers.

Decodes mention markup into display text plus spans, keeps the spans valid
while the text is edited, tracks mentions being typed, and encodes the
buffer back into markup.
"""

from .models import CompositionSession
from .models import MentionObject
from .models import MentionSpan
from .models import MentionSyntax
from .models import Segment
from .errors import PreconditionError
from .syntax import SyntaxRegistry
from .markup import decode_markup
from .markup import encode_markup
from .diffing import DiffOp
from .diffing import Operation
from .diffing import compute_diff
from .reconciler import reconcile_spans
from .composition import advance_composition
from .controller import EditSource
from .controller import MentionController

__all__ = [
    "CompositionSession",
    "DiffOp",
    "EditSource",
    "MentionController",
    "MentionObject",
    "MentionSpan",
    "MentionSyntax",
    "Operation",
    "PreconditionError",
    "Segment",
    "SyntaxRegistry",
    "advance_composition",
    "compute_diff",
    "decode_markup",
    "encode_markup",
    "reconcile_spans",
]
