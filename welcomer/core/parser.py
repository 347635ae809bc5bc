"""Template parser: Markdown files with YAML frontmatter into messages.

A template is a frontmatter block followed by content segments, all
separated by ``---``. Each segment becomes exactly one message:

    ---
    channel: "123456789012345678"
    ---
    Welcome to the server!
    ---
    ![rules](./rules.png)
    ---
    ::break

Segments are classified by a fixed chain of stages (break, image, bullet
normalization, text). A stage returns a Message once it recognises a
segment, and later stages pass Messages through untouched.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
import yaml

from welcomer.core.errors import MalformedTemplateError, TemplateNotFoundError
from welcomer.core.types import (
    BreakMessage,
    ImageMessage,
    Message,
    ParseResult,
    TextMessage,
)

logger = structlog.get_logger()

DELIMITER = "---"
BREAK_TOKEN = "::break"
BULLET = "\u2022 "  # •

_IMAGE_RE = re.compile(r"!\[(.*)\]\((.+)\)")
_BULLET_RE = re.compile(r"^[*-] ", re.MULTILINE)
_REMOTE_RE = re.compile(r"^https?://", re.IGNORECASE)

# A stage receives the segment (or an already classified Message) and the
# directory of the template being parsed.
Stage = Callable[[str | Message, str], str | Message]


def parse_template(path: str | os.PathLike[str]) -> ParseResult:
    """Parse a template file into frontmatter metadata and messages.

    Raises:
        TemplateNotFoundError: The path is not a readable file.
        MalformedTemplateError: The frontmatter is missing or invalid.
    """
    source = os.fspath(path)
    resolved = Path(source)

    if not resolved.is_file():
        raise TemplateNotFoundError(
            "Failed to parse template!",
            f'"{source}" does not exist',
            file=source,
        )

    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateNotFoundError(
            "Failed to parse template!",
            f'"{source}" could not be read: {e}',
            file=source,
        ) from e

    segments = [s.strip() for s in text.split(DELIMITER)]
    segments = [s for s in segments if s]
    if not segments:
        raise MalformedTemplateError(
            "Failed to parse template!", "Frontmatter is missing", file=source
        )

    frontmatter, *chunks = segments
    metadata = _load_frontmatter(frontmatter, source)

    base_dir = os.path.dirname(source)
    messages = tuple(classify_segment(chunk, base_dir) for chunk in chunks)

    logger.debug("template_parsed", path=source, messages=len(messages))
    return ParseResult(
        source_path=source,
        file_name=os.path.basename(source),
        metadata=metadata,
        messages=messages,
    )


def _load_frontmatter(block: str, source: str) -> dict[str, Any]:
    try:
        metadata = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise MalformedTemplateError(
            "Failed to parse template!",
            f"Frontmatter is not valid YAML: {e}",
            file=source,
        ) from e

    if not isinstance(metadata, dict):
        raise MalformedTemplateError(
            "Failed to parse template!",
            "Frontmatter must be a mapping of keys to values",
            file=source,
        )
    return metadata


def is_remote_url(url: str) -> bool:
    """Whether an image URL points at an http(s) resource."""
    return bool(_REMOTE_RE.match(url))


def classify_segment(segment: str, base_dir: str = "") -> Message:
    """Run a single content segment through the classification stages."""
    value: str | Message = segment
    for stage in STAGES:
        value = stage(value, base_dir)

    # _parse_text always classifies
    assert not isinstance(value, str)
    return value


# === Stages ===


def _parse_break(value: str | Message, base_dir: str) -> str | Message:
    if not isinstance(value, str):
        return value
    if value.strip() == BREAK_TOKEN:
        return BreakMessage()
    return value


def _parse_image(value: str | Message, base_dir: str) -> str | Message:
    if not isinstance(value, str):
        return value

    match = _IMAGE_RE.fullmatch(value)
    if match is None:
        return value

    caption, url = match.groups()
    if not is_remote_url(url):
        # Local images are relative to the template
        url = os.path.normpath(os.path.join(base_dir, url))
    return ImageMessage(caption=caption, url=url)


def _translate_bullet_points(value: str | Message, base_dir: str) -> str | Message:
    if not isinstance(value, str):
        return value
    return _BULLET_RE.sub(BULLET, value)


def _parse_text(value: str | Message, base_dir: str) -> str | Message:
    if not isinstance(value, str):
        return value
    return TextMessage(content=value)


STAGES: tuple[Stage, ...] = (
    _parse_break,
    _parse_image,
    _translate_bullet_points,
    _parse_text,
)
