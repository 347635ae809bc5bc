"""Length-bounded message splitting.

Boundaries are tried from the most meaningful (paragraphs, lines) to the
least meaningful, and a finer boundary is only used when a coarser one
cannot bring every piece under the limit. Content is never truncated: if
no boundary works, OversizeFragmentError is raised.
"""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

from welcomer.core.errors import InputTypeError, OversizeFragmentError

Separator = Union[str, re.Pattern[str]]

DEFAULT_MAX_LENGTH = 2000


def verify_string(
    data: Any,
    error: type[Exception] = InputTypeError,
    message: str | None = None,
    allow_empty: bool = True,
) -> str:
    """Return data if it is a string, otherwise raise.

    Args:
        data: The value to check.
        error: Exception class to raise (default: InputTypeError).
        message: Error message (default: "Expected a string, got <data> instead.").
        allow_empty: Whether an empty string is accepted.

    Returns:
        The same string.
    """
    if message is None:
        message = f"Expected a string, got {data!r} instead."
    if not isinstance(data, str):
        raise error(message)
    if not allow_empty and not data:
        raise error(message)
    return data


@dataclass(frozen=True)
class SplitOptions:
    """Options controlling split_message()."""

    max_length: int = DEFAULT_MAX_LENGTH
    # A separator (string or compiled pattern), or an ordered sequence of
    # separators tried one after another.
    boundary: Separator | Sequence[Separator] = "\n"
    prepend: str = ""  # Added to every fragment except the first
    append: str = ""  # Added to every fragment except the last


# (text, separator that preceded it in the source)
_Piece = tuple[str, str]


def split_message(text: str, options: SplitOptions | None = None) -> list[str]:
    """Split text into fragments that do not exceed options.max_length.

    A single boundary splits the text once. With a sequence of boundaries,
    each one is applied in order while some piece is still too long; a
    pattern in a sequence keeps its matches (e.g. ``re.compile(".{1,1900}")``)
    instead of splitting on them. Neighbouring pieces are then re-joined with
    the separator between them as long as the result stays within the limit.

    Args:
        text: Content to split.
        options: Split configuration (default: SplitOptions()).

    Returns:
        Ordered fragments. Text already within the limit comes back as-is.

    Raises:
        InputTypeError: text is not a string.
        OversizeFragmentError: a piece is still too long after every boundary.
    """
    options = options or SplitOptions()
    text = verify_string(text)
    max_length = options.max_length

    if len(text) <= max_length:
        return [text]

    # Room left in a fragment once both affixes are added
    limit = max_length - len(options.prepend) - len(options.append)

    boundary = options.boundary
    if isinstance(boundary, (str, re.Pattern)):
        pieces = _split_on(text, boundary)
    else:
        pieces = [(text, "")]
        pending = deque(boundary)
        while pending and _longest(pieces) > limit:
            separator = pending.popleft()
            pieces = [
                refined
                for piece in pieces
                for refined in _refine(piece, separator)
            ]

    longest = _longest(pieces)
    if longest > limit:
        raise OversizeFragmentError(limit, longest)

    fragments = _pack(pieces, max_length, options.prepend, options.append)

    last = len(fragments) - 1
    return [
        ("" if i == 0 else options.prepend) + fragment + ("" if i == last else options.append)
        for i, fragment in enumerate(fragments)
    ]


def _longest(pieces: list[_Piece]) -> int:
    return max((len(text) for text, _ in pieces), default=0)


def _split_on(text: str, separator: Separator) -> list[_Piece]:
    """Split text on a separator, remembering what each piece followed."""
    if isinstance(separator, str):
        parts = text.split(separator)
        return [(part, "" if i == 0 else separator) for i, part in enumerate(parts)]

    pieces: list[_Piece] = []
    start = 0
    glue = ""
    for match in separator.finditer(text):
        if match.start() == match.end():
            continue
        pieces.append((text[start:match.start()], glue))
        glue = match.group(0)
        start = match.end()
    pieces.append((text[start:], glue))
    return pieces


def _refine(piece: _Piece, separator: Separator) -> list[_Piece]:
    """Apply one boundary of a sequence to a piece."""
    text, glue = piece
    if isinstance(separator, re.Pattern):
        parts = [(m.group(0), "") for m in separator.finditer(text) if m.group(0)]
    else:
        parts = _split_on(text, separator)

    if parts:
        parts[0] = (parts[0][0], glue)
    return parts


def _pack(pieces: list[_Piece], max_length: int, prepend: str, append: str) -> list[str]:
    """Greedily re-join pieces into fragments within max_length."""
    fragments: list[str] = []
    current: str | None = None

    for text, glue in pieces:
        if current is None:
            current = text
            continue
        candidate = current + glue + text
        head = prepend if fragments else ""
        if len(head + candidate + append) <= max_length:
            current = candidate
        else:
            fragments.append(current)
            current = text

    if current is not None:
        fragments.append(current)

    # Discord rejects blank messages
    return [fragment for fragment in fragments if fragment.strip()]
