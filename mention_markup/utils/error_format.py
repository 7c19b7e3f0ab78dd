"""Safe error message formatting utilities.

Ensures exceptions always have useful display messages, even when their
str() representation is empty, and that they can be interpolated into Rich
markup without brackets being parsed as tags.
"""

from __future__ import annotations

from pydantic import ValidationError
from rich.markup import escape as _escape_markup

from ..errors import PreconditionError

# Friendly messages for exception types that often carry no message
FRIENDLY_MESSAGES: dict[type, str] = {
    PreconditionError: "The editor state does not allow this operation.",
    FileNotFoundError: "File not found.",
    KeyboardInterrupt: "Operation interrupted by user.",
}


def format_error_message(e: BaseException, *, include_type: bool = True) -> str:
    """Format an exception into a useful display message.

    Args:
        e: The exception to format
        include_type: Whether to include the exception type name

    Returns:
        A non-empty, user-friendly error message

    Examples:
        >>> format_error_message(ValueError("invalid input"))
        'ValueError: invalid input'

        >>> format_error_message(ValueError("invalid input"), include_type=False)
        'invalid input'
    """
    error_type = type(e).__name__

    if isinstance(e, ValidationError):
        # One line per failing field instead of pydantic's multi-paragraph text
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}" for err in e.errors()
        )
        return f"{error_type}: {details}" if include_type else details

    error_str = str(e)

    # If we have a message, use it
    if error_str:
        if include_type and error_type not in error_str:
            return f"{error_type}: {error_str}"
        return error_str

    # No message - check for friendly fallback
    for exc_type, friendly_msg in FRIENDLY_MESSAGES.items():
        if isinstance(e, exc_type):
            return f"{error_type}: {friendly_msg}"

    # Last resort: just the type name with indicator
    return f"{error_type}: (no additional details)"


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings.

    Args:
        value: Any value to escape (will be converted to str)

    Returns:
        String safe for interpolation into Rich markup f-strings
    """
    return _escape_markup(str(value))
